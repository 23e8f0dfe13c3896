# app/core/lost_found/masking.py
"""
Contact redaction.

``mask_contact`` is applied whenever one party's address is disclosed to
the opposite party (finder/reporter email embedded in an owner message).
``mask_phone`` is for log lines only.
"""
from __future__ import annotations


def mask_contact(address: str) -> str:
    """
    Mask an email address: ``johndoe@x.com`` -> ``j*****e@x.com``.

    Local parts of two characters or fewer cannot be masked meaningfully
    and are returned unchanged.  Values without ``@`` get the same
    first/last treatment over the whole string.
    """
    if not address:
        return address
    local, sep, domain = address.partition("@")
    if len(local) <= 2:
        return address
    masked = local[0] + "*" * (len(local) - 2) + local[-1]
    return f"{masked}{sep}{domain}"


def mask_phone(phone: str | None) -> str:
    """Mask phone number for logging: +1234567890 -> +123***7890"""
    if not phone:
        return "***"
    clean = phone.strip()
    if len(clean) <= 6:
        return "***"
    return f"{clean[:4]}***{clean[-4:]}"


def mask_address(channel: str, address: str | None) -> str:
    """Pick the right masking for a delivery destination in logs."""
    if not address:
        return "***"
    if channel == "sms":
        return mask_phone(address)
    return mask_contact(address)
