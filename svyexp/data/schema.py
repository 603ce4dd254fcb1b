"""Enumerated domains for the categorical respondent fields.

The survey codes sex as 1/2 and the poverty category as 1..5. These enums are
the single place those codes are declared; the recoder rejects anything else.
"""

from enum import IntEnum
from typing import Dict, List


class _CodedDomain(IntEnum):
    """IntEnum with helpers for value sets and display labels."""

    @classmethod
    def values(cls) -> List[int]:
        return [member.value for member in cls]

    @classmethod
    def labels(cls) -> Dict[int, str]:
        return {member.value: member.label for member in cls}

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


class Sex(_CodedDomain):
    """Source coding of biological sex."""

    MALE = 1
    FEMALE = 2


class Gender(_CodedDomain):
    """Derived 0/1 indicator (female = 1)."""

    MALE = 0
    FEMALE = 1


class PovertyCategory(_CodedDomain):
    """Family income as a percentage of the poverty line, five bands."""

    POOR = 1
    NEAR_POOR = 2
    LOW_INCOME = 3
    MIDDLE_INCOME = 4
    HIGH_INCOME = 5


# Sex code -> gender indicator
SEX_TO_GENDER: Dict[int, int] = {
    Sex.MALE.value: Gender.MALE.value,
    Sex.FEMALE.value: Gender.FEMALE.value,
}
