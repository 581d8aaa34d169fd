"""
Parsing of the vision model's free-text answers.

The model is asked a yes/no question but is not a reliable producer of
well-formed text, so these functions never raise: anything they cannot
make sense of is read as "no violation".
"""
import re
from typing import NamedTuple, Optional

UNKNOWN_VEHICLE = "Unknown Vehicle"

# "yes", optionally followed by a comma and whitespace, then the vehicle type
_VEHICLE_PATTERN = re.compile(r"^yes(?:\s*,)?\s*(.*)$", re.IGNORECASE | re.DOTALL)


class ParsedAnswer(NamedTuple):
    has_cars_in_bike_lane: bool
    vehicle_type: Optional[str] = None


def parse_yes_no(answer: Optional[str]) -> bool:
    """True only when the whole answer is "yes" (any casing, surrounding whitespace ignored)."""
    return (answer or "").strip().lower() == "yes"


def parse_vehicle_answer(answer: Optional[str]) -> ParsedAnswer:
    """
    Reads answers of the form "Yes, <vehicle type>" or "No".

    "Yes" without a vehicle yields the "Unknown Vehicle" sentinel; the vehicle
    text keeps the casing the model used.
    """
    text = (answer or "").strip()
    if not text.lower().startswith("yes"):
        return ParsedAnswer(False)

    match = _VEHICLE_PATTERN.match(text)
    # Trailing sentence punctuation is dropped on purpose so "Yes." reads as
    # an unnamed vehicle instead of a vehicle called "."
    vehicle = match.group(1).strip().strip(".!").strip() if match else ""
    return ParsedAnswer(True, vehicle or UNKNOWN_VEHICLE)


def parse_answer(answer: Optional[str], mode: str = "extended") -> ParsedAnswer:
    if mode == "simple":
        has_cars = parse_yes_no(answer)
        return ParsedAnswer(has_cars, UNKNOWN_VEHICLE if has_cars else None)
    return parse_vehicle_answer(answer)
