from typing import Any, Dict, List, Mapping

FIRST_PARTY_VALUES = (1, "1", True)
CONFIG_ERROR = "The connectId submodule requires the 'he' and 'pixelId' parameters to be defined."


def _is_defined(params: Mapping[str, Any], key: str) -> bool:
    return params.get(key) is not None


def is_first_party(value: Any) -> bool:
    """Only the literals 1, "1" and True enable the first-party flag."""
    return value in FIRST_PARTY_VALUES


def validate_params(params: Any) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.

    A usable configuration needs a string 'he' and at least one of
    'pixelId' or 'endpoint'.
    """
    if not isinstance(params, Mapping):
        return ["Field 'params' must be a mapping"]

    errors: List[str] = []
    if "he" not in params:
        errors.append("Missing required field: he")
    elif not isinstance(params["he"], str):
        errors.append("Field 'he' must be a string")

    if not _is_defined(params, "pixelId") and not _is_defined(params, "endpoint"):
        errors.append("One of 'pixelId' or 'endpoint' must be provided")

    return errors


def config_params(config: Any) -> Dict[str, Any]:
    """Return the params mapping of a submodule configuration, or an empty one."""
    if isinstance(config, Mapping):
        params = config.get("params")
        if isinstance(params, Mapping):
            return dict(params)
    return {}
