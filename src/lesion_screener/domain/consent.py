"""Domain model for user consent."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ConsentRecord:
    """Acknowledgements a user must give before any analysis."""

    terms: bool
    privacy: bool
    limitations: bool

    @property
    def granted(self) -> bool:
        """Return True only when every acknowledgement was given."""
        return self.terms and self.privacy and self.limitations
