import re

from unidecode import unidecode


def slugify(text: str, max_length: int = 50) -> str:
    """Tenant slug from a display name: "Clínica São José" -> "clinica-sao-jose"."""
    text = unidecode(text).lower()
    text = re.sub(r"[^a-z0-9]+", "-", text).strip("-")
    return text[:max_length].rstrip("-")
