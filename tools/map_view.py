"""
Map View — pan/zoom state and marker placement for the campaign map.

The viewport is a plain state object owned by whoever displays the map
(one per message/view). Marker coordinates are stored as percentages of
the map image so they survive any rendering size.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from models.campaign import Chapter, MapMarker, MarkerType

MIN_ZOOM = 0.5
MAX_ZOOM = 4.0
WHEEL_STEP = 0.2
BUTTON_STEP = 0.3


@dataclass(frozen=True)
class Rect:
    left: float
    top: float
    width: float
    height: float


@dataclass
class MapViewport:
    """Zoom level, pan offset and edit-mode flags for one map display."""

    zoom: float = 1.0
    offset: Tuple[float, float] = (0.0, 0.0)
    is_dragging: bool = False
    is_fullscreen: bool = False
    add_mode: bool = False
    selected_marker_id: Optional[str] = None
    _drag_anchor: Tuple[float, float] = field(default=(0.0, 0.0), repr=False)

    def zoom_by(self, delta: float) -> float:
        self.zoom = min(max(self.zoom + delta, MIN_ZOOM), MAX_ZOOM)
        return self.zoom

    def wheel(self, delta_y: float) -> float:
        """Scrolling down zooms out, scrolling up zooms in."""
        return self.zoom_by(-WHEEL_STEP if delta_y > 0 else WHEEL_STEP)

    def start_drag(self, x: float, y: float) -> bool:
        if self.add_mode:
            return False
        self.is_dragging = True
        self._drag_anchor = (x - self.offset[0], y - self.offset[1])
        return True

    def drag_to(self, x: float, y: float) -> Tuple[float, float]:
        if self.is_dragging:
            self.offset = (x - self._drag_anchor[0], y - self._drag_anchor[1])
        return self.offset

    def end_drag(self) -> None:
        self.is_dragging = False

    def reset(self) -> None:
        self.zoom = 1.0
        self.offset = (0.0, 0.0)

    def toggle_fullscreen(self) -> bool:
        self.is_fullscreen = not self.is_fullscreen
        if self.is_fullscreen:
            self.reset()
        return self.is_fullscreen

    def escape(self) -> None:
        """Close popups and leave fullscreen/add mode."""
        self.selected_marker_id = None
        self.is_fullscreen = False
        self.add_mode = False

    @property
    def zoom_percent(self) -> int:
        return round(self.zoom * 100)


def click_to_percent(click_x: float, click_y: float, image: Rect) -> Optional[Tuple[float, float]]:
    """Convert a click in screen space to percent coordinates on the image.

    Returns None when the click lands outside the image or the image has no area.
    """
    if image.width <= 0 or image.height <= 0:
        return None
    x = (click_x - image.left) / image.width * 100
    y = (click_y - image.top) / image.height * 100
    if 0 <= x <= 100 and 0 <= y <= 100:
        return x, y
    return None


def place_marker(viewport: MapViewport, click_x: float, click_y: float, image: Rect,
                 label: str, marker_type: MarkerType = MarkerType.LANDMARK) -> Optional[MapMarker]:
    """Create a marker from a click while in add mode, then leave add mode."""
    if not viewport.add_mode:
        return None
    position = click_to_percent(click_x, click_y, image)
    if position is None:
        return None
    viewport.add_mode = False
    return MapMarker(x=position[0], y=position[1], label=label, type=marker_type)


def markers_by_type(markers: List[MapMarker]) -> Dict[MarkerType, List[MapMarker]]:
    grouped: Dict[MarkerType, List[MapMarker]] = {}
    for marker in markers:
        grouped.setdefault(marker.type, []).append(marker)
    return grouped


def chapter_title_for(chapter_id: Optional[str], chapters: List[Chapter]) -> Optional[str]:
    """'Chapitre 3: Le Col Gelé' for a linked chapter id, None when unknown."""
    if not chapter_id:
        return None
    for chapter in chapters:
        if chapter.id == chapter_id:
            return f"Chapitre {chapter.order}: {chapter.title}"
    return None
