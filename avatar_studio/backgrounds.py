from dataclasses import dataclass
from typing import Dict, List, Tuple

from .errors import InvalidRequest


@dataclass(frozen=True)
class BackgroundOption:
    id: str
    name: str
    stops: Tuple[str, ...]
    angle: int = 135

    @property
    def gradient(self) -> str:
        """CSS form of the same stops, used for the page swatches."""
        return css_gradient(self.stops, self.angle)

    def to_json(self) -> Dict[str, object]:
        return {"id": self.id, "name": self.name, "stops": list(self.stops), "gradient": self.gradient}


BG_OPTIONS: List[BackgroundOption] = [
    BackgroundOption("best-red", "BEST Red", ("#e2231a", "#ff5a3d")),
    BackgroundOption("bus-black", "Bus Black", ("#1c1c1c", "#2f2f2f")),
    BackgroundOption("eth-blue", "ETH Blue", ("#3fa9f5", "#2c8bd8")),
    BackgroundOption("sunset", "Mumbai Sunset", ("#e2231a", "#ffd600", "#3fa9f5"), angle=160),
]

DEFAULT_BACKGROUND = BG_OPTIONS[0].id


def stop_positions(count: int) -> List[float]:
    if count <= 1:
        return [0.0] * count
    return [i / (count - 1) for i in range(count)]


def css_gradient(stops: Tuple[str, ...], angle: int = 135) -> str:
    positions = stop_positions(len(stops))
    body = ", ".join(f"{color} {round(pos * 100)}%" for color, pos in zip(stops, positions))
    return f"linear-gradient({angle}deg, {body})"


def parse_hex(color: str) -> Tuple[int, int, int]:
    value = color.lstrip("#")
    if len(value) == 3:
        value = "".join(c * 2 for c in value)
    if len(value) != 6:
        raise ValueError(f"Invalid hex color: {color}")
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def get_background(background_id: str) -> BackgroundOption:
    for option in BG_OPTIONS:
        if option.id == background_id:
            return option
    raise InvalidRequest(f"Unknown background: {background_id}")
