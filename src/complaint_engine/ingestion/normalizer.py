"""Normalization of raw complaint submissions."""

import logging
import re
import unicodedata
from datetime import date, datetime, timezone
from typing import Any

import dateparser

from complaint_engine.models.complaint import (
    MAX_TEXT_LENGTH,
    NO_DESCRIPTION,
    NormalizedComplaint,
    RawSubmission,
)

logger = logging.getLogger(__name__)


class Normalizer:
    """
    Turn a loosely structured submission into a NormalizedComplaint.

    Upstream sources (Google Sheets exports, web forms, webhooks) name the
    same field differently: "descripcion", "Descripción", "description".
    Each logical field has an ordered alias list; the first alias present
    with a non-blank value wins. Keys are compared after folding case,
    accents and separators, so "Created on" matches "created_on".

    Normalization never fails. Malformed values are replaced by fallbacks:
    missing text becomes "Sin descripción", an unusable phone becomes None,
    an unparseable timestamp becomes the current time.
    """

    NAME_ALIASES = ("nombre", "name", "nombre_cliente", "customer_name", "cliente")
    PHONE_ALIASES = ("telefono", "phone", "celular", "phone_number", "tel", "whatsapp")
    TEXT_ALIASES = (
        "descripcion",
        "description",
        "queja",
        "comentario",
        "comentarios",
        "mensaje",
        "message",
    )
    BRANCH_ALIASES = ("sucursal", "branch", "ubicacion", "restaurante", "tienda", "location")
    TIMESTAMP_ALIASES = ("fecha_creacion", "created_on", "fecha", "created_at", "timestamp")

    # Values upstream forms use when the customer left the phone blank
    PHONE_PLACEHOLDERS = frozenset(
        {"edna", "n/a", "na", "none", "null", "sin telefono", "no tiene", "no", "-", "0"}
    )
    URL_MARKERS = ("url", "http", "://", "www.")

    DATE_LANGUAGES = ["es", "en"]

    def __init__(self, country_code: str = "52") -> None:
        """
        Initialize the normalizer.

        Args:
            country_code: Prefix stripped from 12-digit phone numbers.
        """
        self.country_code = country_code

    def normalize(self, raw: RawSubmission) -> NormalizedComplaint:
        """
        Normalize a raw submission.

        Args:
            raw: Arbitrary key/value submission.

        Returns:
            NormalizedComplaint with fallbacks applied.
        """
        fields = self._fold_keys(raw or {})

        text = self.clean_text(self._lookup(fields, self.TEXT_ALIASES)) or NO_DESCRIPTION

        return NormalizedComplaint(
            customer_name=self.clean_text(self._lookup(fields, self.NAME_ALIASES)),
            phone=self.clean_phone(self._lookup(fields, self.PHONE_ALIASES)),
            text=text,
            branch_hint=self.clean_text(self._lookup(fields, self.BRANCH_ALIASES)),
            created_at=self.parse_timestamp(self._lookup(fields, self.TIMESTAMP_ALIASES)),
        )

    @staticmethod
    def fold_key(key: str) -> str:
        """Fold a field name: lowercase, no accents, separators as underscores."""
        decomposed = unicodedata.normalize("NFKD", str(key))
        stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
        return re.sub(r"[\s\-]+", "_", stripped.strip().lower())

    def _fold_keys(self, raw: RawSubmission) -> dict[str, list[Any]]:
        """Group raw values by folded key, keeping their original order."""
        folded: dict[str, list[Any]] = {}
        for key, value in raw.items():
            folded.setdefault(self.fold_key(key), []).append(value)
        return folded

    def _lookup(self, fields: dict[str, list[Any]], aliases: tuple[str, ...]) -> Any:
        """Return the first non-blank value among the aliases."""
        for alias in aliases:
            for value in fields.get(alias, []):
                if value is None:
                    continue
                if isinstance(value, str) and not value.strip():
                    continue
                return value
        return None

    @staticmethod
    def clean_text(value: Any) -> str | None:
        """Trim and truncate a text value. Blank becomes None."""
        if value is None:
            return None
        text = str(value).strip()[:MAX_TEXT_LENGTH].strip()
        return text or None

    def clean_phone(self, value: Any) -> str | None:
        """
        Reduce a phone value to 10 digits.

        Accepts 10 digits, or 12 digits starting with the country code
        (which is stripped). Placeholders and URLs yield None.
        """
        if value is None:
            return None

        raw = str(value).strip()
        lowered = raw.lower()
        if not raw or lowered in self.PHONE_PLACEHOLDERS:
            return None
        if any(marker in lowered for marker in self.URL_MARKERS):
            return None

        digits = re.sub(r"[^0-9]", "", raw)
        if len(digits) == 10:
            return digits
        if len(digits) == 12 and digits.startswith(self.country_code):
            return digits[len(self.country_code):]

        logger.debug("Discarding phone with %d digits", len(digits))
        return None

    def parse_timestamp(self, value: Any) -> datetime:
        """Parse a submission timestamp, falling back to now (UTC)."""
        if isinstance(value, datetime):
            return self._as_utc(value) or datetime.now(timezone.utc)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
        if isinstance(value, str) and value.strip():
            text = value.strip()
            try:
                converted = self._as_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
            except ValueError:
                converted = None
            if converted is not None:
                return converted
            try:
                parsed = dateparser.parse(text, languages=self.DATE_LANGUAGES)
            except (ValueError, TypeError, OverflowError) as e:
                logger.debug("dateparser rejected %r: %s", text, e)
                parsed = None
            if parsed is not None:
                converted = self._as_utc(parsed)
                if converted is not None:
                    return converted
            logger.debug("Unparseable timestamp %r, using current time", text)
        return datetime.now(timezone.utc)

    @staticmethod
    def _as_utc(value: datetime) -> datetime | None:
        """Convert to UTC. None when the shifted value leaves the datetime range."""
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except (ValueError, OverflowError):
            logger.debug("Timestamp %s out of range in UTC", value.isoformat())
            return None
