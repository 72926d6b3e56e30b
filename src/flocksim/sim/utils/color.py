from __future__ import annotations

import pygame


def parse_hex(value: str) -> tuple[int, int, int]:
    digits = value.strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    if len(digits) != 6:
        raise ValueError(f"Invalid hex color: {value!r}")
    try:
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    except ValueError as exc:
        raise ValueError(f"Invalid hex color: {value!r}") from exc


def hex_to_rgba(value: str, alpha: float) -> pygame.Color:
    """Convert `#rrggbb` plus an opacity in [0, 1] into a translucent pygame color."""
    r, g, b = parse_hex(value)
    a = int(round(max(0.0, min(1.0, alpha)) * 255))
    return pygame.Color(r, g, b, a)
