# porteria/services/category_vocabulary.py
"""
Category vocabulary shared with the outside world.

The web booking site, the central tariff server and this station each name
vehicle classes differently, and those taxonomies drift independently. The
mapping is therefore kept as data: add a row here when a new label shows up.
"""

import unicodedata
from typing import Optional

# Any external label (lower-cased, accents stripped) → local category id
CATEGORY_ALIASES = {
    "moto": "moto",
    "motos": "moto",
    "motocicleta": "moto",
    "liviano": "liviano",
    "livianos": "liviano",
    "carro": "liviano",
    "automovil": "liviano",
    "otro": "otros",
    "otros": "otros",
    "pesado": "otros",
}

# Reservation-site label → label shown in the booth UI
RESERVATION_DISPLAY_LABELS = {
    "Automóvil": "Carro",
    "Otro": "Otros",
    "Moto": "Moto",
}

# Labels the booking site is known to send today
KNOWN_RESERVATION_LABELS = ("Automóvil", "Moto", "Otro")


def _fold(label: str) -> str:
    decomposed = unicodedata.normalize("NFKD", label.strip().lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def resolve_category_id(label: Optional[str]) -> Optional[str]:
    """Local category id for an external label, or None when the label is unknown."""
    if not label:
        return None
    return CATEGORY_ALIASES.get(_fold(label))


def display_label(label: Optional[str]) -> Optional[str]:
    if label is None:
        return None
    return RESERVATION_DISPLAY_LABELS.get(label.strip(), label)
