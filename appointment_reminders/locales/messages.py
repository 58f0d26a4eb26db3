from __future__ import annotations

from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class Texts:
    reminder_24h_title: str
    reminder_24h_body: str
    reminder_1h_title: str
    reminder_1h_body: str
    not_specified: str
    test_title: str
    test_body: str
    test_sent: str


MESSAGES: Dict[str, Texts] = {
    "he": Texts(
        reminder_24h_title="📅 תזכורת: פגישה מחר",
        reminder_24h_body=(
            "היי! יש לך פגישה מחר בשעה {time}\n"
            "רכב: {plate}\n"
            "לקוח: {owner}"
        ),
        reminder_1h_title="⏰ תזכורת: פגישה בעוד שעה!",
        reminder_1h_body=(
            "הפגישה מתקרבת! בשעה {time}\n"
            "רכב: {plate}\n"
            "לקוח: {owner}"
        ),
        not_specified="לא צוין",
        test_title="🧪 בדיקה!",
        test_body="התראות אוטומטיות עובדות מצוין! ✅",
        test_sent="Test notification sent!",
    ),
    "en": Texts(
        reminder_24h_title="📅 Reminder: appointment tomorrow",
        reminder_24h_body=(
            "Hi! You have an appointment tomorrow at {time}\n"
            "Vehicle: {plate}\n"
            "Customer: {owner}"
        ),
        reminder_1h_title="⏰ Reminder: appointment in one hour!",
        reminder_1h_body=(
            "Your appointment is coming up at {time}\n"
            "Vehicle: {plate}\n"
            "Customer: {owner}"
        ),
        not_specified="not specified",
        test_title="🧪 Test!",
        test_body="Automatic notifications are working! ✅",
        test_sent="Test notification sent!",
    ),
}


def get_text(language: str, key: str, **kwargs: str) -> str:
    texts = MESSAGES.get(language, MESSAGES["he"])
    value = getattr(texts, key)
    if kwargs:
        return value.format(**kwargs)
    return value
