from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Helpline:
    name: str
    description: str
    phone: str | None = None
    url: str | None = None

    @property
    def link(self) -> str | None:
        """``tel:`` link for phone lines, otherwise the website."""

        if self.phone:
            return "tel:" + "".join(ch for ch in self.phone if ch.isdigit() or ch == "+")
        return self.url


# 先頭が最優先の窓口。表示順もこの順番
HELPLINES: tuple[Helpline, ...] = (
    Helpline(
        name="Tele-Manas",
        phone="14416",
        description="Govt of India's 24/7 mental health support. Free, confidential, across languages.",
    ),
    Helpline(
        name="Kiran",
        phone="1800-599-0019",
        description="24/7 mental health rehabilitation helpline by the Govt of India.",
    ),
    Helpline(
        name="Vandrevala Foundation",
        phone="1860-266-2345",
        url="https://www.vandrevalafoundation.com/",
        description="Free, 24/7 counselling and crisis mediation via phone or WhatsApp.",
    ),
    Helpline(
        name="Find A Helpline",
        url="https://findahelpline.com/",
        description="Directory of helplines for other countries and specialised needs.",
    ),
)

EMERGENCY_NOTE = (
    "Sanctuary is an AI tool and cannot provide medical assistance. If you are in immediate danger, "
    "call your local emergency services (112 in India) or go to the nearest emergency room."
)
