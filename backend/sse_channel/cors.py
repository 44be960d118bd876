"""Origin access control for cross-origin event streams."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

ALLOW_ALL = "*"
PREFLIGHT_MAX_AGE = 86400


@dataclass(frozen=True)
class CorsPolicy:
    """Which origins may open a stream.

    ``origins`` is ``None`` when CORS handling is disabled. A ``"*"`` entry
    allows every origin.
    """

    origins: frozenset[str] | None = None

    @classmethod
    def disabled(cls) -> CorsPolicy:
        return cls(origins=None)

    @classmethod
    def allow_all(cls) -> CorsPolicy:
        return cls(origins=frozenset({ALLOW_ALL}))

    @classmethod
    def allow_list(cls, origins: Iterable[str]) -> CorsPolicy:
        return cls(origins=frozenset(o.strip() for o in origins if o and o.strip()))

    @classmethod
    def from_option(cls, value: Any) -> CorsPolicy:
        """Build a policy from the ``cors`` channel option.

        Accepts ``False``/``None``, ``{"origins": [...]}``, a bare list of
        origins, or an existing policy. Anything else disables CORS.
        """
        if isinstance(value, CorsPolicy):
            return value
        if isinstance(value, Mapping):
            value = value.get("origins")
        if isinstance(value, str):
            value = [value] if value.strip() else None
        if isinstance(value, (list, tuple, set, frozenset)):
            return cls.allow_list(str(o) for o in value)
        return cls.disabled()

    @property
    def enabled(self) -> bool:
        return self.origins is not None

    @property
    def allows_all(self) -> bool:
        return bool(self.origins) and ALLOW_ALL in self.origins

    def allows(self, origin: str | None) -> bool:
        """Return whether a request from *origin* may be served.

        Requests without an ``Origin`` header are same-origin and always pass.
        """
        if not self.enabled or not origin:
            return True
        return self.allows_all or origin in self.origins

    def response_headers(self, origin: str | None) -> dict[str, str]:
        """Headers added to an accepted stream for a cross-origin client."""
        if not self.enabled or not origin or not self.allows(origin):
            return {}
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Headers": "Last-Event-ID",
        }

    def preflight_headers(self, origin: str | None) -> dict[str, str]:
        headers = self.response_headers(origin)
        if headers:
            headers["Access-Control-Allow-Methods"] = "GET, HEAD, OPTIONS"
            headers["Access-Control-Max-Age"] = str(PREFLIGHT_MAX_AGE)
        return headers
