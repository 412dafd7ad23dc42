"""
Locate and parse the JSON object embedded in a model response.
"""
import json
from typing import Any, Dict

from core.exceptions import ExtractionError


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the region from the first "{" to the last "}" as a JSON object.

    Surrounding prose is ignored. Braces inside that prose can widen the
    region and break the parse; malformed JSON is not repaired.

    Args:
        text: Raw model output

    Returns:
        Parsed JSON object

    Raises:
        ExtractionError: If there is no bracketed region, it is not valid
            JSON, or it does not decode to an object
    """
    if not isinstance(text, str):
        raise ExtractionError("No JSON found in response", details={"type": type(text).__name__})

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        raise ExtractionError("No JSON found in response")

    candidate = text[start:end + 1]
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise ExtractionError(
            f"Invalid JSON in response: {e.msg}",
            details={"line": e.lineno, "column": e.colno}
        )

    if not isinstance(parsed, dict):
        raise ExtractionError("Response JSON is not an object")
    return parsed
