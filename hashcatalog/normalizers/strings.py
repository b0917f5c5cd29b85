"""String canonicalization applied before the WD-FNV hashes."""


def normalize_string(s: str) -> str:
    """Canonicalize a string for WD-FNV hashing.

    Applies, in order:
    - Lowercase every character
    - Replace forward slashes with backslashes
    - Remove carriage returns and line feeds

    No other whitespace is touched. CRC hashes never see this form.
    """
    return s.lower().replace("/", "\\").replace("\r", "").replace("\n", "")


def replace_lone_surrogates(s: str) -> str:
    """Replace unpaired UTF-16 surrogates with U+FFFD so the string is valid UTF-8.

    Adjacent high/low surrogate code points are joined into one character.
    """
    try:
        s.encode("utf-8")
        return s
    except UnicodeEncodeError:
        return s.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")
