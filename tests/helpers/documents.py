"""Deterministic valid CPF/CNPJ numbers for test data.

Check digits are computed with the textbook weights, independently of the
validation code under test.
"""


def _mod11_digit(digits: str, weights) -> str:
    total = sum(int(d) * w for d, w in zip(digits, weights))
    remainder = total % 11
    return "0" if remainder < 2 else str(11 - remainder)


def cpf_for(seed: int) -> str:
    """Valid 11-digit CPF derived from ``seed`` (1 <= seed < 10**8)."""
    base = f"1{seed:08d}"
    first = _mod11_digit(base, range(10, 1, -1))
    second = _mod11_digit(base + first, range(11, 1, -1))
    return base + first + second


def cnpj_for(seed: int) -> str:
    """Valid 14-digit CNPJ (headquarters branch 0001) derived from ``seed``."""
    base = f"2{seed:07d}0001"
    first = _mod11_digit(base, (5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2))
    second = _mod11_digit(base + first, (6, 5, 4, 3, 2, 9, 8, 7, 6, 5, 4, 3, 2))
    return base + first + second


def format_cpf(cpf: str) -> str:
    return f"{cpf[:3]}.{cpf[3:6]}.{cpf[6:9]}-{cpf[9:]}"


def format_cnpj(cnpj: str) -> str:
    return f"{cnpj[:2]}.{cnpj[2:5]}.{cnpj[5:8]}/{cnpj[8:12]}-{cnpj[12:]}"
