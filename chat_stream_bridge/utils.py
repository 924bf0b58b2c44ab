import json
from typing import Any

from .result import Error, Ok, Result


def _parse_json_safely(json_str: str) -> Result[Any, str]:
    """
    Safely parse JSON string, returning Result instead of raising.

    Args:
        json_str: JSON string to parse

    Returns:
        Ok(value) if parsing succeeds, Error(str) if parsing fails
    """
    try:  # nosemgrep: forbid-try-except
        return Ok(json.loads(json_str))
    except json.JSONDecodeError as e:
        return Error(f"JSON decode error: {e!s}")
    except TypeError as e:
        return Error(f"Not a JSON document: {e!s}")


def _parse_sse_data_line(line: str) -> Result[str, str]:
    """
    Extract the payload of an SSE ``data:`` line.

    Args:
        line: Line like 'data: {...}' (trailing newlines allowed)

    Returns:
        Ok(payload) with the text after 'data:', Error(str) otherwise
    """
    stripped = line.strip()
    if not stripped.startswith("data:"):
        return Error("Line does not start with 'data:'")
    return Ok(stripped[5:].strip())
