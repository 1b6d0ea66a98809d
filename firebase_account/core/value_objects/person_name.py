"""PersonName value object parsed from and formatted to display names."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

_PREFIXES = {"mr", "mrs", "ms", "miss", "mx", "dr", "prof", "sir", "dame"}
_SUFFIXES = {"jr", "sr", "ii", "iii", "iv", "phd", "md", "esq"}


def _normalized(token: str) -> str:
    return token.rstrip(".,").lower()


@dataclass(frozen=True)
class PersonName:
    """Structured name components of a person."""

    given_name: Optional[str] = None
    middle_name: Optional[str] = None
    family_name: Optional[str] = None
    name_prefix: Optional[str] = None
    name_suffix: Optional[str] = None
    nickname: Optional[str] = None

    def __post_init__(self) -> None:
        if not any((self.given_name, self.middle_name, self.family_name, self.nickname)):
            raise ValueError("PersonName requires at least one name component")

    @classmethod
    def parse(cls, display_name: str) -> PersonName:
        """Parse a free-form display name.

        Raises ``ValueError`` if the string does not contain a name.
        """
        tokens = display_name.split()
        prefix = None
        suffix = None
        if len(tokens) > 1 and _normalized(tokens[0]) in _PREFIXES:
            prefix = tokens.pop(0)
        if len(tokens) > 1 and _normalized(tokens[-1]) in _SUFFIXES:
            suffix = tokens.pop()
            if tokens[-1].endswith(","):
                tokens[-1] = tokens[-1].rstrip(",")

        if not tokens or not any(ch.isalpha() for ch in "".join(tokens)):
            raise ValueError(f"Unable to parse a person name from {display_name!r}")

        if len(tokens) == 1:
            return cls(given_name=tokens[0], name_prefix=prefix, name_suffix=suffix)
        return cls(
            given_name=tokens[0],
            middle_name=" ".join(tokens[1:-1]) or None,
            family_name=tokens[-1],
            name_prefix=prefix,
            name_suffix=suffix,
        )

    def formatted(self, style: str = "medium") -> str:
        """Format the name. ``short`` | ``medium`` | ``long``."""
        if style == "short":
            return self.nickname or self.given_name or self.family_name or ""
        if style == "medium":
            parts = [self.given_name, self.family_name]
        elif style == "long":
            parts = [self.name_prefix, self.given_name, self.middle_name, self.family_name, self.name_suffix]
        else:
            raise ValueError(f"Unknown name format style: {style}")
        formatted = " ".join(p for p in parts if p)
        return formatted or self.nickname or ""
