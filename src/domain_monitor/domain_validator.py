"""
Domain validation and normalization module.

Registered domains are stored under their canonical name: lowercase, IDNA
(punycode) encoded when they contain international characters, with every
label checked by the IDNA rules, at least one dot and an optional
restriction to a set of TLDs.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional

import idna

from domain_monitor.enums import DomainValidationErrorCode
from domain_monitor.exceptions import ValidationError


# Forbidden characters in domain names (control chars, spaces, special symbols)
FORBIDDEN_CHARS_PATTERN = re.compile(
    r'[\x00-\x1f\x7f'           # Control characters
    r'\s'                        # Whitespace
    r'!@#$%^&*()+=\[\]{}|\\:;"\'<>,?/`~]'  # Special symbols not allowed
)


@dataclass
class DomainValidationError:
    """Structured error information for domain validation failures."""

    code: DomainValidationErrorCode
    message: str
    details: dict


@dataclass
class DomainValidationResult:
    """Result of domain validation operation."""

    valid: bool
    canonical_domain: Optional[str]
    error: Optional[DomainValidationError]


class DomainValidator:
    """
    Validates and normalizes domain names before they are registered.

    Handles lowercase canonical form, IDNA encoding of international
    names, rejection of forbidden characters and an optional TLD allowlist.
    """

    def __init__(self, allowed_tlds: Optional[Iterable[str]] = None) -> None:
        """
        Initialize validator.

        Args:
            allowed_tlds: Optional allowlist of TLDs; None accepts any TLD
        """
        self._allowed_tlds = (
            {tld.lower().lstrip(".") for tld in allowed_tlds}
            if allowed_tlds is not None
            else None
        )

    def validate(self, raw_domain: str) -> DomainValidationResult:
        """
        Validate and normalize a domain string.

        Args:
            raw_domain: The raw domain string to validate

        Returns:
            DomainValidationResult with validation status and canonical form or error
        """
        if not raw_domain or not raw_domain.strip():
            return self._invalid(
                DomainValidationErrorCode.EMPTY_INPUT,
                "Domain input is empty",
                {"raw_input": raw_domain},
            )

        domain = raw_domain.strip().rstrip(".")

        if FORBIDDEN_CHARS_PATTERN.search(domain):
            return self._invalid(
                DomainValidationErrorCode.FORBIDDEN_CHARS,
                "Domain contains forbidden characters",
                {
                    "raw_input": raw_domain,
                    "forbidden_chars": FORBIDDEN_CHARS_PATTERN.findall(domain),
                },
            )

        try:
            canonical = self.normalize_to_canonical(domain)
        except ValidationError as e:
            return self._invalid(
                DomainValidationErrorCode.IDNA_ERROR, e.message, e.details
            )

        tld = self._extract_tld(canonical)
        if not tld:
            return self._invalid(
                DomainValidationErrorCode.INVALID_TLD,
                "Could not extract TLD from domain",
                {"raw_input": raw_domain, "canonical": canonical},
            )

        if not self.is_valid_tld(tld):
            return self._invalid(
                DomainValidationErrorCode.INVALID_TLD,
                f"TLD '{tld}' is not in the configured allowed list",
                {
                    "raw_input": raw_domain,
                    "tld": tld,
                    "allowed_tlds": sorted(self._allowed_tlds or []),
                },
            )

        return DomainValidationResult(valid=True, canonical_domain=canonical, error=None)

    def canonicalize(self, raw_domain: str) -> str:
        """
        Validate a domain and return its canonical form.

        Raises:
            ValidationError: If the domain is not acceptable
        """
        result = self.validate(raw_domain)
        if not result.valid:
            raise ValidationError(
                code=result.error.code.value,
                message=result.error.message,
                details=result.error.details,
            )
        return result.canonical_domain

    def normalize_to_canonical(self, domain: str) -> str:
        """
        Convert domain to canonical form (lowercase, IDNA-encoded).

        Raises:
            ValidationError: If a label breaks the IDNA rules
        """
        domain_lower = domain.lower()

        # ASCII names pass through unchanged apart from the label checks
        try:
            return idna.encode(domain_lower, uts46=True).decode("ascii")
        except idna.IDNAError as e:
            raise ValidationError(
                code=DomainValidationErrorCode.IDNA_ERROR.value,
                message=f"IDNA encoding failed: {e}",
                details={"domain": domain, "idna_error": str(e)},
            )

    def is_valid_tld(self, tld: str) -> bool:
        """Check if TLD is allowed (always True without an allowlist)."""
        if self._allowed_tlds is None:
            return True
        return tld.lower() in self._allowed_tlds

    def _extract_tld(self, domain: str) -> Optional[str]:
        if not domain or "." not in domain:
            return None

        sld, tld = domain.rsplit(".", 1)
        if not sld or not tld:
            return None

        return tld.lower()

    @staticmethod
    def _invalid(
        code: DomainValidationErrorCode, message: str, details: dict
    ) -> DomainValidationResult:
        return DomainValidationResult(
            valid=False,
            canonical_domain=None,
            error=DomainValidationError(code=code, message=message, details=details),
        )
