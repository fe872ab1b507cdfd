import re
from unidecode import unidecode


def slugify(text):
    text = unidecode(text or "").lower()
    text = re.sub(r'[^a-z0-9]+', '-', text).strip('-')
    return text


def canonicalize_data_set_name(name: str | None) -> str:
    """URL-safe data set name; raises ValueError when nothing usable is left."""
    if name is None or not name.strip():
        raise ValueError("Data set name cannot be empty")
    canonical = slugify(name)
    if not canonical:
        raise ValueError(f"Data set name '{name}' contains no letters or digits")
    return canonical
