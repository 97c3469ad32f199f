"""
Equipment advisory collaborator.

When requested equipment is taken, an advisory service may propose a
different time or alternative items. It is optional: the reservation
manager is correct without it, and the configured backend can be swapped
for ``NullAdvisory`` to switch suggestions off entirely.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, time

import requests
from django.conf import settings  # type: ignore
from django.db.models import Q  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

logger = logging.getLogger(__name__)

ALTERNATIVES_LIMIT = 5


@dataclass(frozen=True)
class AdvisoryRequest:
    date: date
    start_time: time
    end_time: time
    booking_kind: str
    requested_item_ids: tuple[int, ...]
    unavailable_item_ids: tuple[int, ...] = ()
    unavailable_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class AdvisorySuggestion:
    text: str
    alternative_item_ids: tuple[int, ...] = field(default_factory=tuple)


class AdvisoryService(ABC):
    @abstractmethod
    def suggest(self, request: AdvisoryRequest) -> AdvisorySuggestion | None:
        """Return a suggestion, or None when there is nothing to say."""


class NullAdvisory(AdvisoryService):
    """Advisory switched off."""

    def suggest(self, request: AdvisoryRequest) -> AdvisorySuggestion | None:
        return None


class GatewayAdvisory(AdvisoryService):
    """
    Suggestions from a chat-completions style gateway.

    Alternatives are items in ``available`` condition that are free for the
    requested window. Without an API key the service still lists the
    alternatives with a plain-text hint. HTTP errors and timeouts propagate
    to the caller, which treats them as "no suggestion".
    """

    system_prompt = "You are a concise, professional studio booking assistant."

    def __init__(self, api_url: str | None = None, api_key: str | None = None, model: str | None = None, timeout: float | None = None):
        self.api_url = api_url or settings.ADVISORY_API_URL
        self.api_key = settings.ADVISORY_API_KEY if api_key is None else api_key
        self.model = model or settings.ADVISORY_MODEL
        self.timeout = timeout or settings.ADVISORY_TIMEOUT_SECONDS

    def find_alternatives(self, request: AdvisoryRequest) -> list:
        from .models import EquipmentItem

        busy = Q(
            reservations__date=request.date,
            reservations__start_time__lt=request.end_time,
            reservations__end_time__gt=request.start_time,
        )
        return list(
            EquipmentItem.objects.filter(status=EquipmentItem.Status.AVAILABLE)
            .exclude(pk__in=request.requested_item_ids)
            .exclude(pk__in=EquipmentItem.objects.filter(busy).values("pk"))
            .order_by("category", "name")[:ALTERNATIVES_LIMIT]
        )

    def build_prompt(self, request: AdvisoryRequest, alternatives: list) -> str:
        lines = [
            f"You are a helpful studio booking assistant. A user is trying to book a {request.booking_kind} "
            f"session on {request.date.isoformat()} from {request.start_time:%H:%M} to {request.end_time:%H:%M}.",
            "",
        ]
        if request.unavailable_names:
            lines.append(f"Unavailable resources: {', '.join(request.unavailable_names)}")
        if alternatives:
            lines.append("Available alternatives: " + ", ".join(f"{item.name} ({item.category})" for item in alternatives))
        lines.append("")
        lines.append(
            "Provide a brief, helpful suggestion (max 2 sentences) for an alternative. "
            "Be specific and professional. Suggest a different time or alternative equipment if available."
        )
        return "\n".join(lines)

    def fallback_text(self, request: AdvisoryRequest, alternatives: list) -> str:
        text = f"Resources unavailable: {', '.join(request.unavailable_names)}."
        if alternatives:
            text += " Consider alternatives: " + ", ".join(item.name for item in alternatives) + "."
        return text

    def suggest(self, request: AdvisoryRequest) -> AdvisorySuggestion | None:
        alternatives = self.find_alternatives(request)
        alternative_ids = tuple(item.pk for item in alternatives)

        if not self.api_key:
            return AdvisorySuggestion(self.fallback_text(request, alternatives), alternative_ids)

        response = requests.post(
            self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.model,
                "messages": [
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": self.build_prompt(request, alternatives)},
                ],
                "max_tokens": 150,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        choices = response.json().get("choices") or []
        text = ((choices[0].get("message") or {}).get("content") or "").strip() if choices else ""
        if not text:
            text = self.fallback_text(request, alternatives)

        logger.debug(f"Advisory suggestion for {request.date}: {text}")
        return AdvisorySuggestion(text, alternative_ids)


def get_advisory() -> AdvisoryService:
    """Instantiate the backend named by ``settings.ADVISORY_BACKEND``."""
    backend = getattr(settings, "ADVISORY_BACKEND", "") or "apps.inventory.advisory.NullAdvisory"
    return import_string(backend)()
