from __future__ import annotations

import os
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict


def _env_extra_mode(default: str = "ignore") -> str:
    """
    Determine the extra-mode for service payload models.

    POSTENRICH_MODELS_EXTRA: allow|forbid|ignore
    Convenience booleans: "true/1/on" -> forbid (strict), "false/0/off" -> ignore
    """
    raw = (os.getenv("POSTENRICH_MODELS_EXTRA") or default).strip().lower()

    if raw in {"allow", "forbid", "ignore"}:
        return raw
    if raw in {"1", "true", "yes", "on", "strict"}:
        return "forbid"
    if raw in {"0", "false", "no", "off", "lenient"}:
        return "ignore"

    return default


_EXTRA = _env_extra_mode()


class ServiceModel(BaseModel):
    """Base for payloads returned by external services.

    Providers add fields freely, so unknown keys are ignored unless
    POSTENRICH_MODELS_EXTRA asks for strict validation.
    """

    model_config = ConfigDict(extra=_EXTRA)


class OEmbedResponse(ServiceModel):
    """oEmbed 1.0 response (https://oembed.com/#section2.3)."""

    type: str
    version: Optional[str] = None
    html: Optional[str] = None
    title: Optional[str] = None
    url: Optional[str] = None
    provider_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    # Some providers send numeric strings
    width: Optional[Union[int, str]] = None
    height: Optional[Union[int, str]] = None


__all__ = ["ServiceModel", "OEmbedResponse", "_env_extra_mode"]
