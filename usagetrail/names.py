"""Application display name resolution."""

import logging
from collections.abc import Mapping
from typing import Optional

from .logging_setup import get_logger, log_once
from .types import NameLookup

logger = get_logger("names")


def fallback_label(app_id: str) -> str:
    """Derive a label from the last dot-delimited segment of an app id."""
    segment = app_id.rsplit(".", 1)[-1]
    return segment or app_id or "unknown"


class DisplayNameResolver:
    """Resolves app ids to display names, degrading to a derived label.

    Explicit labels win over the lookup. A lookup that fails (LookupError for
    an uninstalled app, or any other error from the metadata service) yields
    ``fallback_label(app_id)``; unexpected errors are logged once per app.
    """

    def __init__(
        self,
        labels: Optional[Mapping[str, str]] = None,
        lookup: Optional[NameLookup] = None,
    ):
        self.labels = dict(labels or {})
        self.lookup = lookup

    def resolve(self, app_id: str) -> str:
        label = self.labels.get(app_id)
        if label:
            return label

        if self.lookup is not None:
            try:
                name = self.lookup(app_id)
            except LookupError:
                name = None
            except Exception as e:
                log_once(
                    logger,
                    logging.WARNING,
                    "Name lookup failed for %s: %s",
                    app_id,
                    e,
                    key=f"lookup_error:{app_id}",
                )
                name = None
            if name:
                return name

        log_once(
            logger,
            logging.DEBUG,
            "No display name for %s, using fallback label",
            app_id,
            key=f"fallback:{app_id}",
        )
        return fallback_label(app_id)

    __call__ = resolve
