"""
Students Shared Helpers

Training type labels and the signup deep links encoded in printed QR codes.
"""

from app.core.config import settings
from app.modules.students.models import ClassType

CLASS_TYPE_LABELS: dict[ClassType, str] = {
    ClassType.TYPE_1: "Initial Firearms",
    ClassType.TYPE_2: "Firearms Requalification",
    ClassType.TYPE_3: "CPR/AED and/or First Aid",
    ClassType.TYPE_4: "Handcuffing and/or Pepper Spray",
    ClassType.TYPE_5: "CEW / Taser",
    ClassType.TYPE_6: "Baton",
}


def class_type_label(class_type: ClassType) -> str:
    """Human readable name of a training type."""
    return CLASS_TYPE_LABELS[class_type]


def signup_url(class_type: ClassType, base_url: str | None = None) -> str:
    """
    Deep link that opens the signup form pre-selected for ``class_type``.

    Args:
        class_type: Training type
        base_url: Frontend origin (defaults to FRONTEND_URL)

    Returns:
        ``{base_url}/signup/{class_type}``
    """
    base = (base_url or settings.frontend_url).rstrip("/")
    return f"{base}/signup/{class_type.value}"


def signup_links(base_url: str | None = None) -> list[dict[str, str]]:
    """One deep link per training type, in training type order."""
    return [
        {
            "class_type": class_type.value,
            "label": CLASS_TYPE_LABELS[class_type],
            "url": signup_url(class_type, base_url),
        }
        for class_type in ClassType
    ]


def normalize_phone(phone: str) -> str:
    """Strip formatting characters, keeping a leading ``+`` and the digits."""
    phone = phone.strip()
    digits = "".join(ch for ch in phone if ch.isdigit())
    return f"+{digits}" if phone.startswith("+") else digits
