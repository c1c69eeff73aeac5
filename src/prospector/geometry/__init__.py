"""Polygon area and vertex editing."""

from prospector.geometry.area import polygon_acres, ring_area_sq_meters
from prospector.geometry.shape_edit import ShapeEditController, ShapeEditState

__all__ = ["ShapeEditController", "ShapeEditState", "polygon_acres", "ring_area_sq_meters"]
