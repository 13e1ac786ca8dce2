from datetime import timedelta

DEFAULT_CODE_VALIDITY = timedelta(days=30)

BUILTIN_PROMO_CODES: tuple[str, ...] = (
    "DIGI34",
    "FREO2",
    "LPOS4",
    "DIGI56",
    "FREO7",
    "LPOS9",
    "DIGI78",
    "FREO12",
    "LPOS15",
    "DIGI90",
    "DIGI45",
    "FREO8",
    "LPOS12",
    "DIGI67",
    "FREO15",
    "LPOS18",
    "DIGI89",
    "FREO20",
    "LPOS25",
    "DIGI123",
)
