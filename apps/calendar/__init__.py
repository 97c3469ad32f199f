"""Calendar app: the unified month view merged from independent event sources."""
