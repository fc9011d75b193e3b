import secrets

DEFAULT_CODE_LENGTH = 6


def generate_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Uniformly random numeric code, zero padded to ``length`` digits."""
    if length <= 0:
        raise ValueError("code length must be positive")
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def is_well_formed(code, length: int = DEFAULT_CODE_LENGTH) -> bool:
    return isinstance(code, str) and len(code) == length and code.isascii() and code.isdigit()
