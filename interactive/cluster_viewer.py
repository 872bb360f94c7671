import math
from typing import Dict, List, Tuple

import numpy as np
import pygame

from quadcluster import (
    Annotation,
    ClusterManager,
    ClusterManagerConfig,
    ClusterOrAnnotation,
    Coordinate,
    CoordinateRegion,
    CoordinateSpan,
    MapPoint,
    MapRect,
)

# ---------------------------- Viewport ---------------------------- #


class Viewport:
    """Maps between screen pixels and the manager's projected map space."""

    __slots__ = ("center", "height", "scale", "width")

    def __init__(self, center: MapPoint, scale: float, width: int, height: int):
        self.center = center
        self.scale = scale  # screen pixels per map point
        self.width = width
        self.height = height

    def visible_rect(self) -> MapRect:
        half_w = self.width / 2 / self.scale
        half_h = self.height / 2 / self.scale
        return MapRect(
            self.center.x - half_w,
            self.center.y - half_h,
            self.center.x + half_w,
            self.center.y + half_h,
        )

    def region(self) -> CoordinateRegion:
        rect = self.visible_rect()
        top_left = MapPoint(rect.min_x, rect.min_y).to_coordinate()
        bottom_right = MapPoint(rect.max_x, rect.max_y).to_coordinate()
        center = MapPoint(rect.mid_x, rect.mid_y).to_coordinate()
        span = CoordinateSpan(
            abs(top_left.latitude - bottom_right.latitude),
            abs(bottom_right.longitude - top_left.longitude),
        )
        return CoordinateRegion(center, span)

    def to_screen(self, coordinate: Coordinate) -> Tuple[int, int]:
        p = MapPoint.from_coordinate(coordinate)
        sx = (p.x - self.center.x) * self.scale + self.width / 2
        sy = (p.y - self.center.y) * self.scale + self.height / 2
        return int(sx), int(sy)

    def to_map(self, sx: float, sy: float) -> MapPoint:
        return MapPoint(
            self.center.x + (sx - self.width / 2) / self.scale,
            self.center.y + (sy - self.height / 2) / self.scale,
        )

    def pan(self, dx_pixels: float, dy_pixels: float):
        self.center = MapPoint(
            self.center.x - dx_pixels / self.scale,
            self.center.y - dy_pixels / self.scale,
        )

    def zoom(self, factor: float, anchor: Tuple[int, int]):
        # Keep the map point under the cursor fixed on screen.
        before = self.to_map(*anchor)
        self.scale *= factor
        after = self.to_map(*anchor)
        self.center = MapPoint(
            self.center.x + before.x - after.x, self.center.y + before.y - after.y
        )


# ------------------------------ Viewer ------------------------------ #


def random_annotations(center: Coordinate, count: int, spread: float, seed: int = 7):
    rng = np.random.default_rng(seed)
    lats = rng.normal(center.latitude, spread, count)
    lons = rng.normal(center.longitude, spread * 1.3, count)
    return [Annotation(Coordinate(float(a), float(o))) for a, o in zip(lats, lons)]


class ClusterViewer:
    def __init__(self, screen, width, height):
        self.screen = screen
        self.width = width
        self.height = height
        self.font = pygame.font.SysFont(None, 18)
        self.manager = ClusterManager(ClusterManagerConfig())
        self.displayed: Dict[ClusterOrAnnotation, None] = {}

        center = Coordinate(37.7749, -122.4194)
        self.manager.add_many(random_annotations(center, 5000, 0.08))

        span_map = 0.6 / 360.0 * (2**28)
        self.viewport = Viewport(
            MapPoint.from_coordinate(center), width / span_map, width, height
        )
        self.reload()

    def reload(self):
        diff = self.manager.reload((self.width, self.height), self.viewport.region())
        for value in diff.removals:
            self.displayed.pop(value, None)
        for value in diff.insertions:
            self.displayed[value] = None

    def add_annotation(self, sx: int, sy: int):
        coordinate = self.viewport.to_map(sx, sy).to_coordinate()
        self.manager.add(Annotation(coordinate))
        self.reload()

    def draw(self):
        for value in self.displayed:
            pos = self.viewport.to_screen(value.coordinate)
            if value.is_cluster:
                n = len(value.members())
                r = int(8 + 3 * math.log2(n))
                pygame.draw.circle(self.screen, (40, 110, 220), pos, r)
                label = self.font.render(str(n), True, (255, 255, 255))
                self.screen.blit(label, label.get_rect(center=pos))
            else:
                pygame.draw.circle(self.screen, (220, 60, 60), pos, 4)

        status = self.font.render(
            f"zoom {self.manager.zoom_level}  markers {len(self.displayed)}",
            True,
            (0, 0, 0),
        )
        self.screen.blit(status, (8, 8))


# ------------------------------- main ------------------------------- #


def main():
    pygame.init()
    width, height = 800, 600
    screen = pygame.display.set_mode((width, height))
    pygame.display.set_caption("quadcluster viewer")
    clock = pygame.time.Clock()
    viewer = ClusterViewer(screen, width, height)

    dragging = False
    drag_moved = False
    running = True
    while running:
        clock.tick(60)
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
                dragging = True
                drag_moved = False
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                if not drag_moved:
                    viewer.add_annotation(*event.pos)
                dragging = False
            elif event.type == pygame.MOUSEMOTION and dragging:
                dx, dy = event.rel
                if dx or dy:
                    drag_moved = True
                    viewer.viewport.pan(dx, dy)
                    viewer.reload()
            elif event.type == pygame.MOUSEWHEEL:
                factor = 1.25 if event.y > 0 else 0.8
                viewer.viewport.zoom(factor, pygame.mouse.get_pos())
                viewer.reload()

        screen.fill((245, 245, 240))
        viewer.draw()
        pygame.display.flip()

    pygame.quit()


if __name__ == "__main__":
    main()
