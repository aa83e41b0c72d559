"""A delay value: either a single number of seconds or a random range."""

from __future__ import annotations

from dataclasses import dataclass

_SINGLE_OR_RANGE = (
    'Delay needs to be either a single float: "0.1" or a range of floats, '
    'delimited by dash: "0.1-0.8"'
)
_BAD_RANGE = "Delay range min and max values need to be valid floats. For example: 0.1-0.5"


def _parse_float(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid float: {text!r}")
    return float(text)


@dataclass
class OptRange:
    """A single float (stored in min, is_range False) or a range of floats."""

    min: float = 0.0
    max: float = 0.0
    is_range: bool = False
    has_delay: bool = False

    def initialize(self, value: str) -> None:
        """Set the range from "N" or "MIN-MAX"; an empty value leaves it unchanged."""
        parts = value.split("-")
        if len(parts) > 2:
            raise ValueError(_SINGLE_OR_RANGE)
        if len(parts) == 2:
            self.is_range = True
            self.has_delay = True
            try:
                low = _parse_float(parts[0])
                high = _parse_float(parts[1])
            except ValueError:
                raise ValueError(_BAD_RANGE) from None
            self.min, self.max = low, high
        elif value:
            self.is_range = False
            self.has_delay = True
            try:
                self.min = _parse_float(value)
            except ValueError:
                raise ValueError(_SINGLE_OR_RANGE) from None

    def to_dict(self) -> dict[str, str]:
        """Return the serialisable form {"value": "..."}."""
        if self.min == self.max:
            value = f"{self.min:.2f}"
        else:
            value = f"{self.min:.2f}-{self.max:.2f}"
        return {"value": value}

    @classmethod
    def from_dict(cls, data) -> OptRange:
        """Build an OptRange from the form produced by to_dict."""
        if not isinstance(data, dict):
            raise ValueError("delay must be an object")
        value = data.get("value") or ""
        if not isinstance(value, str):
            raise ValueError("delay value must be a string")
        result = cls()
        result.initialize(value)
        return result