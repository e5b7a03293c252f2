IRAN_COUNTRY_CODE = "98"

# Persian (U+06F0..) and Arabic-Indic (U+0660..) digits typed on RTL keyboards
_DIGIT_TRANSLATION = str.maketrans(
    "۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩",
    "01234567890123456789",
)


def _digits_only(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def normalize_phone(phone: str) -> str:
    """Return phone in the local trunk form used as the account key (09120000000).

    Persian and Arabic-Indic digits are converted to ASCII, separators are
    dropped and +98 / 0098 / 98 prefixes are rewritten to a leading 0.
    Returns an empty string when nothing usable remains.
    """
    if phone is None:
        return ""
    raw = str(phone).strip().translate(_DIGIT_TRANSLATION)
    if not raw:
        return ""

    digits = _digits_only(raw)
    if not digits:
        return ""

    if raw.startswith("+") or digits.startswith("00"):
        digits = digits.lstrip("0")
        if digits.startswith(IRAN_COUNTRY_CODE):
            # "+98 0912..." carries a redundant trunk 0
            return "0" + digits[len(IRAN_COUNTRY_CODE):].removeprefix("0")
        # Foreign number, keep it international
        return f"+{digits}"

    if digits.startswith(IRAN_COUNTRY_CODE) and len(digits) == 12:
        return "0" + digits[len(IRAN_COUNTRY_CODE):]

    if not digits.startswith("0"):
        digits = "0" + digits
    return digits


def is_valid_phone(phone: str) -> bool:
    """Local numbers are 11 digits with the trunk 0; international ones 8 to 15."""
    if not phone:
        return False
    if phone.startswith("+"):
        return 8 <= len(phone) - 1 <= 15
    return len(phone) == 11
