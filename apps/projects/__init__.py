"""Projects app: client projects and the tasks tracked against them."""
