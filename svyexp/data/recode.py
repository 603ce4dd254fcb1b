"""Variable recoding: sex -> gender indicator, povcat -> categorical factor."""

import logging
from typing import Optional, Sequence

import pandas as pd

from ..constants import GENDER, POVCAT, SEX
from ..utils.error_handling import DomainViolation
from .schema import SEX_TO_GENDER, PovertyCategory

logger = logging.getLogger(__name__)


def _check_domain(values: pd.Series, allowed: Sequence[int], column: str) -> None:
    """Raise DomainViolation if any value (or missing) falls outside `allowed`."""
    invalid = ~values.isin(list(allowed))
    if invalid.any():
        bad = values[invalid]
        raise DomainViolation(
            column=column,
            invalid_values=bad.tolist(),
            n_invalid=int(invalid.sum()),
            allowed=allowed,
        )


def recode_gender(sex: pd.Series) -> pd.Series:
    """Map sex codes 1/2 to a 0/1 gender indicator, row by row.

    Args:
        sex: Source sex codes

    Returns:
        int64 Series named "gender", aligned with the input index

    Raises:
        DomainViolation: if any value is missing or outside {1, 2}
    """
    _check_domain(sex, list(SEX_TO_GENDER), sex.name or SEX)
    return sex.astype("int64").map(SEX_TO_GENDER).astype("int64").rename(GENDER)


def declare_poverty_category(
    povcat: pd.Series, levels: Optional[Sequence[int]] = None
) -> pd.Series:
    """Declare the poverty category as an unordered categorical factor.

    All declared levels are kept as categories even when no respondent has
    them, so an empty level shows up in the model matrix instead of vanishing.

    Args:
        povcat: Source poverty category codes
        levels: Declared levels (defaults to the five survey bands)

    Raises:
        DomainViolation: if any value is missing or outside `levels`
    """
    levels = list(levels) if levels is not None else PovertyCategory.values()
    name = povcat.name or POVCAT
    _check_domain(povcat, levels, name)
    codes = povcat.astype("int64")
    return pd.Series(
        pd.Categorical(codes, categories=levels, ordered=False),
        index=povcat.index,
        name=name,
    )


def recode_respondents(frame: pd.DataFrame) -> pd.DataFrame:
    """Add `gender` and declare `povcat` categorical on a copy of `frame`."""
    recoded = frame.copy()
    recoded[GENDER] = recode_gender(frame[SEX])
    recoded[POVCAT] = declare_poverty_category(frame[POVCAT])

    counts = recoded[POVCAT].value_counts(sort=False)
    empty = [int(level) for level, n in counts.items() if n == 0]
    if empty:
        logger.warning(f"Poverty categories with no respondents: {empty}")

    logger.info(
        f"Recoded {len(recoded)} respondents: "
        f"{int(recoded[GENDER].sum())} female, "
        f"{int((recoded[GENDER] == 0).sum())} male"
    )
    return recoded
