"""State FIPS codes, postal abbreviations and full names."""

from __future__ import annotations

from typing import Dict, Final, Optional, Tuple

# (FIPS, postal abbreviation, full name)
_STATES: Final[Tuple[Tuple[str, str, str], ...]] = (
    ("01", "AL", "Alabama"),
    ("02", "AK", "Alaska"),
    ("04", "AZ", "Arizona"),
    ("05", "AR", "Arkansas"),
    ("06", "CA", "California"),
    ("08", "CO", "Colorado"),
    ("09", "CT", "Connecticut"),
    ("10", "DE", "Delaware"),
    ("11", "DC", "District of Columbia"),
    ("12", "FL", "Florida"),
    ("13", "GA", "Georgia"),
    ("15", "HI", "Hawaii"),
    ("16", "ID", "Idaho"),
    ("17", "IL", "Illinois"),
    ("18", "IN", "Indiana"),
    ("19", "IA", "Iowa"),
    ("20", "KS", "Kansas"),
    ("21", "KY", "Kentucky"),
    ("22", "LA", "Louisiana"),
    ("23", "ME", "Maine"),
    ("24", "MD", "Maryland"),
    ("25", "MA", "Massachusetts"),
    ("26", "MI", "Michigan"),
    ("27", "MN", "Minnesota"),
    ("28", "MS", "Mississippi"),
    ("29", "MO", "Missouri"),
    ("30", "MT", "Montana"),
    ("31", "NE", "Nebraska"),
    ("32", "NV", "Nevada"),
    ("33", "NH", "New Hampshire"),
    ("34", "NJ", "New Jersey"),
    ("35", "NM", "New Mexico"),
    ("36", "NY", "New York"),
    ("37", "NC", "North Carolina"),
    ("38", "ND", "North Dakota"),
    ("39", "OH", "Ohio"),
    ("40", "OK", "Oklahoma"),
    ("41", "OR", "Oregon"),
    ("42", "PA", "Pennsylvania"),
    ("44", "RI", "Rhode Island"),
    ("45", "SC", "South Carolina"),
    ("46", "SD", "South Dakota"),
    ("47", "TN", "Tennessee"),
    ("48", "TX", "Texas"),
    ("49", "UT", "Utah"),
    ("50", "VT", "Vermont"),
    ("51", "VA", "Virginia"),
    ("53", "WA", "Washington"),
    ("54", "WV", "West Virginia"),
    ("55", "WI", "Wisconsin"),
    ("56", "WY", "Wyoming"),
    ("72", "PR", "Puerto Rico"),
)

STATE_NAMES_BY_FIPS: Final[Dict[str, str]] = {fips: name for fips, _, name in _STATES}
STATE_NAMES_BY_ABBR: Final[Dict[str, str]] = {abbr: name for _, abbr, name in _STATES}
STATE_ABBR_BY_FIPS: Final[Dict[str, str]] = {fips: abbr for fips, abbr, _ in _STATES}


def state_name(code: Optional[str]) -> str:
    """Translate a FIPS code, postal abbreviation or full name to a full name.

    Unknown values are returned unchanged (the API labels places with full
    state names, which already pass through), and ``None`` becomes "".
    """

    if not code:
        return ""
    value = code.strip()
    if value in STATE_NAMES_BY_FIPS:
        return STATE_NAMES_BY_FIPS[value]
    if value.upper() in STATE_NAMES_BY_ABBR:
        return STATE_NAMES_BY_ABBR[value.upper()]
    return value

