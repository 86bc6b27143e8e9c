"""Starter troubleshooting questions offered on an empty conversation."""

from __future__ import annotations

import random

STARTER_QUESTIONS: tuple[str, ...] = (
    "My circuit isn't powering on. Where should I start probing with my "
    "multimeter to find the fault?",
    "What common protection components are found at a power input, and how do "
    "I test them?",
    "What are the best practices for safely probing a live circuit to avoid "
    "shorting pins?",
    "I suspect a short circuit on my board. What is a logical step-by-step "
    "process to locate it?",
    "Walk me through designing a basic GPCS (Control System) logic flow for a "
    "sensor and actuator.",
    "I just finished soldering a new PCB. What visual and electrical checks "
    "should I do before applying power?",
    "My microcontroller isn't reading a sensor correctly. How can I "
    "troubleshoot the signal path?",
)


def pick_starter_questions(count: int = 3, seed: int | None = None) -> list[str]:
    """Return ``count`` distinct starter questions using a seeded shuffle."""
    count = max(0, min(count, len(STARTER_QUESTIONS)))
    return random.Random(seed).sample(STARTER_QUESTIONS, count)
