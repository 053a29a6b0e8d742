from typing import Any, Dict, Mapping, Optional


def _section(consent: Any, key: str) -> Any:
    return consent.get(key) if isinstance(consent, Mapping) else None


def gdpr_applies(consent: Optional[Mapping[str, Any]]) -> bool:
    """True only when the signal carries a gdpr section with a truthy gdprApplies."""
    gdpr = _section(consent, "gdpr")
    return bool(_section(gdpr, "gdprApplies"))


def consent_params(consent: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """
    Encode a consent signal as the gdpr, gdpr_consent and us_privacy
    query parameters.

    Missing sections mean consent is not established for that regime;
    they encode as "0" and empty strings, never as an error.
    """
    applies = gdpr_applies(consent)
    usp = _section(consent, "uspConsent")
    return {
        "gdpr": "1" if applies else "0",
        "gdpr_consent": (_section(consent["gdpr"], "consentString") or "") if applies else "",
        "us_privacy": usp if usp else "",
    }
