"""
Map Canvas component for the plot tracker GUI.

This module provides a lat/lng map view based on PyQtGraph with support for:
- A georeferenced raster overlay
- Parcel polygons and row polylines as feature layers
- Click and hover handler registration for drawing tools
- Layer visibility and ordering

Notes
-----
The scene uses ``x = longitude`` and ``y = latitude``. The aspect ratio is
locked to ``cos(latitude)`` so that ground distances look square around the
current center.
"""

from dataclasses import dataclass
import math
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pyqtgraph as pg

pg.setConfigOptions(
    antialias=True,
    background='w',
    foreground='k'
)

from PySide6.QtWidgets import QGraphicsPolygonItem, QVBoxLayout, QWidget
from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QPolygonF
from loguru import logger

from plotkeeper.core.overlay import GeoRaster

DEFAULT_CENTER = (43.95, 4.8)
DEFAULT_SPAN_DEG = 0.02

ClickHandler = Callable[[float, float, Any], bool]
HoverHandler = Callable[[float, float], None]


@dataclass(frozen=True)
class LayerBounds:
    """Layer extent in scene coordinates (``x = lng``, ``y = lat``)."""

    left: float
    bottom: float
    right: float
    top: float


@dataclass(frozen=True)
class FeatureStyle:
    """Pen and brush settings for one drawn feature.

    Parameters
    ----------
    color : str
        Stroke color as hex.
    width : float
        Stroke width in screen pixels.
    fill_alpha : float
        Fill opacity in ``[0, 1]``, ``0`` disables fill.
    dashed : bool
        Draw a dashed stroke.
    """

    color: str
    width: float = 2.0
    fill_alpha: float = 0.0
    dashed: bool = False

    def pen(self):
        style = Qt.PenStyle.DashLine if self.dashed else Qt.PenStyle.SolidLine
        return pg.mkPen(color=self.color, width=self.width, style=style)

    def brush(self):
        if self.fill_alpha <= 0:
            return pg.mkBrush(None)
        color = QColor(self.color)
        color.setAlphaF(float(self.fill_alpha))
        return pg.mkBrush(color)


class CustomViewBox(pg.ViewBox):
    """
    Custom ViewBox with enhanced mouse handling.

    Supports mode switching between Pan and Draw modes. Dragging always
    pans, the mode only changes the cursor.

    Signals
    -------
    sigClicked : Signal(object)
        Emitted when the canvas is left-clicked.
    sigCoordinateHover : Signal(float, float)
        Emitted when mouse moves over the canvas.
    """

    sigClicked = Signal(object)
    sigCoordinateHover = Signal(float, float)

    # Mode constants
    MODE_PAN = 0
    MODE_DRAW = 1

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.setMouseMode(pg.ViewBox.PanMode)
        self._current_mode = self.MODE_PAN

    def set_mode(self, mode: int) -> None:
        """
        Set the interaction mode.

        Parameters
        ----------
        mode : int
            One of MODE_PAN, MODE_DRAW.
        """
        self._current_mode = mode

    def mode(self) -> int:
        return self._current_mode

    def mouseDragEvent(self, ev, axis=None) -> None:
        """Pan the view by the drag delta."""
        if ev.button() != Qt.MouseButton.LeftButton:
            super().mouseDragEvent(ev, axis)
            return
        ev.accept()
        p_now = self.mapToView(ev.pos())
        p_last = self.mapToView(ev.lastPos())
        delta = p_now - p_last

        if delta.x() == 0 and delta.y() == 0:
            return

        current_rect = self.viewRect()
        new_center = current_rect.center() - delta
        current_rect.moveCenter(new_center)
        self.setRange(current_rect, padding=0)

    def mouseClickEvent(self, ev) -> None:
        """Handle mouse click events."""
        if ev.button() == Qt.MouseButton.LeftButton:
            self.sigClicked.emit(ev)
            ev.accept()
        else:
            super().mouseClickEvent(ev)

    def hoverEvent(self, ev) -> None:
        """Track the cursor position in view coordinates."""
        if ev.isExit():
            return
        pos = self.mapToView(ev.pos())
        self.sigCoordinateHover.emit(pos.x(), pos.y())


class MapCanvas(QWidget):
    """
    Lat/lng map widget with PyQtGraph backend.

    Layers are either a single raster image (the overlay) or a group of
    vector features keyed by feature id. Feature layers are refreshed in
    place so their order and visibility survive redraws.

    Signals
    -------
    sigCoordinateChanged : Signal(float, float)
        Emitted when cursor moves, as ``(lat, lng)``.
    sigFeatureClicked : Signal(str, str)
        Emitted with ``(layer_name, feature_id)`` when a clickable feature
        is clicked.
    sigLayerAdded : Signal(str, str)
        Emitted with ``(layer_name, layer_type)`` for new layers.
    sigLayerRemoved : Signal(str)
        Emitted after a layer is removed.

    Examples
    --------
    >>> canvas = MapCanvas()
    >>> canvas.set_feature_layer("Parcels", {"p1": [(0, 0), (0, 1), (1, 1)]},
    ...                          FeatureStyle("#2a9d8f", fill_alpha=0.2), closed=True)
    >>> canvas.sigCoordinateChanged.connect(lambda lat, lng: print(lat, lng))
    """

    sigCoordinateChanged = Signal(float, float)
    sigFeatureClicked = Signal(str, str)

    # Signals for layer panel sync
    sigLayerAdded = Signal(str, str) # name, type
    sigLayerRemoved = Signal(str)

    LAYER_RASTER = "Raster"
    LAYER_VECTOR = "Vector"

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        """
        Initialize the Map Canvas.

        Parameters
        ----------
        parent : QWidget, optional
            Parent widget.
        """
        super().__init__(parent)

        # Layer registry: {name: {'item', 'type', 'visible', 'bounds', 'features'}}
        self._layers: Dict[str, Dict[str, Any]] = {}
        self._layer_order: List[str] = []

        self._click_handlers: List[ClickHandler] = []
        self._hover_handlers: List[HoverHandler] = []
        self._overlay_items: List[Any] = []

        # Initialize UI
        self._init_ui()
        self.set_center(*DEFAULT_CENTER)

        logger.debug("MapCanvas initialized")

    def _init_ui(self) -> None:
        """Initialize the UI components."""
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        # Create custom ViewBox
        self._view_box = CustomViewBox()
        self._view_box.sigClicked.connect(self._on_canvas_clicked)
        self._view_box.sigCoordinateHover.connect(self._on_coordinate_hover)

        # Create PlotWidget with custom ViewBox
        self._plot_widget = pg.PlotWidget(viewBox=self._view_box)
        self._plot_widget.setBackground('w')

        # Hide axes for map-like view
        plot_item = self._plot_widget.getPlotItem()
        plot_item.hideAxis('left')
        plot_item.hideAxis('bottom')
        plot_item.hideButtons()

        layout.addWidget(self._plot_widget)

        # Root group holding every layer item
        self._item_group = pg.ItemGroup()
        self._view_box.addItem(self._item_group)

    # ---- View ----

    def set_center(
        self, lat: float, lng: float, span_deg: float = DEFAULT_SPAN_DEG
    ) -> None:
        """
        Center the view on a coordinate.

        Parameters
        ----------
        lat, lng : float
            Target center in degrees.
        span_deg : float
            Visible latitude span in degrees.
        """
        self._lock_aspect(lat)
        half_lat = span_deg / 2.0
        half_lng = half_lat / max(math.cos(math.radians(lat)), 1e-6)
        self._view_box.setRange(
            xRange=(lng - half_lng, lng + half_lng),
            yRange=(lat - half_lat, lat + half_lat),
            padding=0.0,
        )

    def _lock_aspect(self, lat: float) -> None:
        # pixels per degree of longitude shrink with cos(lat)
        ratio = max(math.cos(math.radians(lat)), 1e-6)
        self._view_box.setAspectLocked(True, ratio=ratio)

    def view_center(self) -> Tuple[float, float]:
        """Return the current view center as ``(lat, lng)``."""
        center = self._view_box.viewRect().center()
        return center.y(), center.x()

    def fit_bounds(self, bounds: LayerBounds, padding: float = 0.05) -> None:
        """Zoom so the given extent fills the view."""
        self._lock_aspect((bounds.bottom + bounds.top) / 2.0)
        width = max(bounds.right - bounds.left, 1e-9)
        height = max(bounds.top - bounds.bottom, 1e-9)
        rect = QRectF(bounds.left, bounds.bottom, width, height)
        self._view_box.setRange(rect, padding=padding)

    def set_mode(self, mode: int) -> None:
        """
        Set the interaction mode.

        Parameters
        ----------
        mode : int
            0=Pan, 1=Draw
        """
        self._view_box.set_mode(mode)

        # Update cursor
        if mode == CustomViewBox.MODE_DRAW:
            self._plot_widget.setCursor(Qt.CursorShape.CrossCursor)
        else:
            self._plot_widget.setCursor(Qt.CursorShape.OpenHandCursor)

    # ---- Raster layers ----

    def add_raster_image_layer(
        self,
        raster: GeoRaster,
        layer_name: str,
        opacity: float = 1.0,
    ) -> bool:
        """
        Add a decoded raster as an image layer.

        Parameters
        ----------
        raster : GeoRaster
            ``(H, W, C)`` image with lat/lng bounds, row 0 at the north edge.
        layer_name : str
            Name for the layer. An existing layer with the same name is
            replaced.
        opacity : float
            Image opacity in ``[0, 1]``.

        Returns
        -------
        bool
            True if the layer was added.
        """
        image = np.asarray(raster.image)
        if image.ndim not in (2, 3) or image.size == 0:
            logger.error(f"Invalid raster image shape: {image.shape}")
            return False

        bounds = raster.bounds
        if bounds.right <= bounds.left or bounds.top <= bounds.bottom:
            logger.error(f"Invalid raster bounds: {bounds}")
            return False

        if layer_name in self._layers:
            self.remove_layer(layer_name)

        # Row 0 is north, pyqtgraph draws row 0 at the lowest y
        image_item = pg.ImageItem(axisOrder='row-major')
        image_item.setImage(np.ascontiguousarray(np.flipud(image)), autoLevels=False)
        image_item.setRect(
            QRectF(
                bounds.left,
                bounds.bottom,
                bounds.right - bounds.left,
                bounds.top - bounds.bottom,
            )
        )
        image_item.setOpacity(float(opacity))
        image_item.setZValue(-100)  # Raster at bottom

        self._item_group.addItem(image_item)
        self._layers[layer_name] = {
            'item': image_item,
            'type': self.LAYER_RASTER,
            'visible': True,
            'bounds': LayerBounds(bounds.left, bounds.bottom, bounds.right, bounds.top),
            'features': {},
        }
        self._layer_order.append(layer_name)

        logger.info(f"Loaded raster layer: {layer_name} {image.shape}")
        self.sigLayerAdded.emit(layer_name, self.LAYER_RASTER)
        return True

    def set_layer_opacity(self, layer_name: str, opacity: float) -> None:
        if layer_name in self._layers:
            self._layers[layer_name]['item'].setOpacity(float(opacity))

    # ---- Feature layers ----

    def set_feature_layer(
        self,
        layer_name: str,
        features: Mapping[str, Sequence[Tuple[float, float]]],
        style: FeatureStyle | Mapping[str, FeatureStyle],
        closed: bool = False,
        clickable: bool = False,
        tooltips: Optional[Mapping[str, str]] = None,
    ) -> None:
        """
        Create or refresh a vector layer of lat/lng features.

        Parameters
        ----------
        layer_name : str
            Layer name. An existing layer is refreshed in place, keeping its
            order and visibility.
        features : Mapping[str, Sequence[(lat, lng)]]
            Feature vertices keyed by feature id.
        style : FeatureStyle or Mapping[str, FeatureStyle]
            One style for all features, or one per feature id.
        closed : bool
            Draw polygons instead of polylines.
        clickable : bool
            Emit ``sigFeatureClicked`` when a polyline is clicked.
        tooltips : Mapping[str, str], optional
            Hover text per feature id.
        """
        created = layer_name not in self._layers
        if created:
            group = pg.ItemGroup()
            group.setZValue(100) # Vectors on top
            self._item_group.addItem(group)
            self._layers[layer_name] = {
                'item': group,
                'type': self.LAYER_VECTOR,
                'visible': True,
                'bounds': None,
                'features': {},
            }
            self._layer_order.append(layer_name)

        layer_info = self._layers[layer_name]
        group = layer_info['item']
        for item in layer_info['features'].values():
            self._detach_item(item)
        layer_info['features'] = {}

        tooltips = tooltips or {}
        all_lat: List[float] = []
        all_lng: List[float] = []
        for feature_id, coords in features.items():
            if not coords:
                continue
            feature_style = style.get(feature_id) if isinstance(style, Mapping) else style
            if feature_style is None:
                continue
            lats = [float(lat) for lat, _ in coords]
            lngs = [float(lng) for _, lng in coords]
            all_lat.extend(lats)
            all_lng.extend(lngs)

            if closed:
                item = self._make_polygon_item(lats, lngs, feature_style)
            else:
                item = self._make_polyline_item(
                    layer_name, feature_id, lats, lngs, feature_style, clickable
                )
            if feature_id in tooltips:
                item.setToolTip(tooltips[feature_id])
            item.setParentItem(group)
            layer_info['features'][feature_id] = item

        if all_lat:
            layer_info['bounds'] = LayerBounds(
                min(all_lng), min(all_lat), max(all_lng), max(all_lat)
            )
        else:
            layer_info['bounds'] = None

        if created:
            logger.debug(f"Vector layer created: {layer_name}")
            self.sigLayerAdded.emit(layer_name, self.LAYER_VECTOR)

    def _make_polygon_item(
        self, lats: List[float], lngs: List[float], style: FeatureStyle
    ) -> QGraphicsPolygonItem:
        polygon = QPolygonF([QPointF(lng, lat) for lat, lng in zip(lats, lngs)])
        item = QGraphicsPolygonItem(polygon)
        pen = style.pen()
        pen.setCosmetic(True)
        item.setPen(pen)
        item.setBrush(style.brush())
        return item

    def _make_polyline_item(
        self,
        layer_name: str,
        feature_id: str,
        lats: List[float],
        lngs: List[float],
        style: FeatureStyle,
        clickable: bool,
    ) -> pg.PlotCurveItem:
        item = pg.PlotCurveItem(
            x=np.asarray(lngs, dtype=float),
            y=np.asarray(lats, dtype=float),
            pen=style.pen(),
        )
        if clickable:
            item.setClickable(True, width=max(int(style.width) + 6, 8))
            item.sigClicked.connect(
                lambda _item, ev, name=layer_name, fid=feature_id: (
                    self._on_feature_clicked(name, fid, ev)
                )
            )
        return item

    def get_feature_item(self, layer_name: str, feature_id: str) -> Any:
        """Return the graphics item drawn for one feature, or None."""
        layer_info = self._layers.get(layer_name)
        if layer_info is None:
            return None
        return layer_info['features'].get(feature_id)

    def get_feature_ids(self, layer_name: str) -> List[str]:
        layer_info = self._layers.get(layer_name)
        if layer_info is None:
            return []
        return list(layer_info['features'].keys())

    # ---- Overlay items ----

    def add_overlay_item(self, item: Any) -> None:
        """Add a transient graphics item (previews, markers) above all layers."""
        if item in self._overlay_items:
            return
        if item.zValue() == 0:
            item.setZValue(1000)
        self._item_group.addItem(item)
        self._overlay_items.append(item)

    def remove_overlay_item(self, item: Any) -> None:
        if item not in self._overlay_items:
            return
        self._overlay_items.remove(item)
        self._detach_item(item)

    # ---- Interaction handlers ----

    def register_click_handler(self, handler: ClickHandler) -> None:
        """
        Register a left-click handler.

        Handlers receive ``(lat, lng, event)`` and return True when they
        consumed the click. Later handlers are not called after that.
        """
        if handler not in self._click_handlers:
            self._click_handlers.append(handler)

    def unregister_click_handler(self, handler: ClickHandler) -> None:
        if handler in self._click_handlers:
            self._click_handlers.remove(handler)

    def register_hover_handler(self, handler: HoverHandler) -> None:
        """Register a callback receiving ``(lat, lng)`` on mouse move."""
        if handler not in self._hover_handlers:
            self._hover_handlers.append(handler)

    def unregister_hover_handler(self, handler: HoverHandler) -> None:
        if handler in self._hover_handlers:
            self._hover_handlers.remove(handler)

    def dispatch_click(self, lat: float, lng: float, ev: Any = None) -> bool:
        """Run click handlers in registration order until one consumes it."""
        for handler in list(self._click_handlers):
            if handler(lat, lng, ev):
                return True
        return False

    def _on_coordinate_hover(self, x: float, y: float) -> None:
        """Handle coordinate hover updates."""
        lat, lng = y, x
        self.sigCoordinateChanged.emit(lat, lng)
        for handler in list(self._hover_handlers):
            handler(lat, lng)

    def _on_canvas_clicked(self, ev) -> None:
        """Handle canvas click events."""
        pos = self._view_box.mapSceneToView(ev.scenePos())
        lat, lng = pos.y(), pos.x()
        logger.debug(f"Canvas clicked at: ({lat:.6f}, {lng:.6f})")
        self.dispatch_click(lat, lng, ev)

    def _on_feature_clicked(self, layer_name: str, feature_id: str, ev) -> None:
        """Feature clicks also reach the click handlers, like a map click."""
        pos = self._view_box.mapSceneToView(ev.scenePos())
        if not self.dispatch_click(pos.y(), pos.x(), ev):
            logger.debug(f"Feature clicked: {layer_name}/{feature_id}")
            self.sigFeatureClicked.emit(layer_name, feature_id)

    # ---- Layer management ----

    def _detach_item(self, item: Any) -> None:
        item.setParentItem(None)
        if item.scene():
            item.scene().removeItem(item)

    def remove_layer(self, layer_name: str) -> bool:
        """
        Remove a layer from the canvas.

        Parameters
        ----------
        layer_name : str
            Name of the layer to remove.

        Returns
        -------
        bool
            True if layer was removed, False if not found.
        """
        if layer_name not in self._layers:
            return False

        layer_info = self._layers.pop(layer_name)
        for item in layer_info['features'].values():
            self._detach_item(item)
        self._detach_item(layer_info['item'])

        if layer_name in self._layer_order:
            self._layer_order.remove(layer_name)

        logger.debug(f"Layer removed: {layer_name}")
        self.sigLayerRemoved.emit(layer_name)
        return True

    def has_layer(self, layer_name: str) -> bool:
        return layer_name in self._layers

    def set_layer_visibility(self, layer_name: str, visible: bool) -> None:
        """
        Set visibility of a layer.

        Parameters
        ----------
        layer_name : str
            Name of the layer.
        visible : bool
            Whether the layer should be visible.
        """
        if layer_name in self._layers:
            self._layers[layer_name]['visible'] = visible
            self._layers[layer_name]['item'].setVisible(visible)
            logger.debug(f"Layer '{layer_name}' visibility: {visible}")

    def update_layer_order(self, order: List[str]) -> None:
        """
        Update the Z-order of layers.

        Parameters
        ----------
        order : List[str]
            List of layer names from top to bottom.
        """
        self._layer_order = [name for name in order if name in self._layers]
        for i, name in enumerate(reversed(self._layer_order)):
            z_value = -100 + i
            self._layers[name]['item'].setZValue(z_value)
        logger.debug(f"Layer order updated: {order}")

    def get_layer_names(self) -> List[str]:
        """Get list of layer names."""
        return list(self._layer_order)

    def get_layer_bounds(self, layer_name: str) -> Optional[LayerBounds]:
        layer_info = self._layers.get(layer_name)
        if layer_info is None:
            return None
        return layer_info.get('bounds')

    def zoom_to_layer(self, layer_name: str) -> bool:
        """
        Zoom to fit a specific layer.

        Parameters
        ----------
        layer_name : str
            Name of the layer to zoom to.

        Returns
        -------
        bool
            False when the layer is missing or empty.
        """
        bounds = self.get_layer_bounds(layer_name)
        if bounds is None:
            return False
        self.fit_bounds(bounds)
        return True

    def cleanup(self) -> None:
        """Remove all layers, overlay items and handlers."""
        for item in list(self._overlay_items):
            self.remove_overlay_item(item)
        for name in list(self._layers.keys()):
            self.remove_layer(name)
        self._click_handlers.clear()
        self._hover_handlers.clear()
        logger.debug("MapCanvas cleanup complete")
