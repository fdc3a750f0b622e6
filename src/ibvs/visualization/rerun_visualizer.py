"""Rerun-based visualization of visual servoing runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

import numpy as np
import rerun as rr
import rerun.blueprint as rrb

if TYPE_CHECKING:
    from ..servo_loop import HistoryRecord


class RerunServoVisualizer:
    """Rerun viewer for the per-step history of a servo loop.

    Only consumes HistoryRecord snapshots; it never touches the loop.

    Entity hierarchy:
        image/
            desired     - Desired feature positions (green, static)
            current     - Current feature positions (red)
        world/
            target      - World points (static)
            camera      - Camera pose
            optical_axis - Camera viewing direction
            trajectory  - Camera positions so far
        plots/
            error_norm  - Feature error norm
            condition   - Jacobian condition number
            velocity/*  - Commanded twist components
    """

    _VELOCITY_NAMES = ("vx", "vy", "vz", "wx", "wy", "wz")

    def __init__(self, app_name: str = "python-ibvs", spawn: bool = True) -> None:
        """Initialize Rerun visualization.

        Args:
            app_name: Name for the Rerun application window
            spawn: If True, automatically spawn the Rerun viewer
        """
        rr.init(app_name, spawn=spawn)
        self._positions: list[np.ndarray] = []
        self._setup_coordinate_system()
        self._setup_layout()

    def _setup_coordinate_system(self) -> None:
        """Use the camera convention X-right, Y-down, Z-forward."""
        rr.log("world", rr.ViewCoordinates.RDF, static=True)

    def _setup_layout(self) -> None:
        """Configure the viewer layout."""
        blueprint = rrb.Blueprint(
            rrb.Horizontal(
                contents=[
                    rrb.Vertical(
                        contents=[
                            rrb.Spatial2DView(name="Image Plane", origin="image"),
                            rrb.Spatial3DView(name="World", origin="world"),
                        ]
                    ),
                    rrb.Vertical(
                        contents=[
                            rrb.TimeSeriesView(name="Error", origin="plots/error_norm"),
                            rrb.TimeSeriesView(name="Velocity", origin="plots/velocity"),
                            rrb.TimeSeriesView(name="Jacobian cond", origin="plots/condition"),
                        ]
                    ),
                ]
            )
        )
        rr.send_blueprint(blueprint)

    def log_targets(self, points: np.ndarray, desired_features: np.ndarray) -> None:
        """Log the world points and desired image features (static).

        Args:
            points: Nx3 world points
            desired_features: Nx2 desired image features
        """
        rr.log(
            "world/target",
            rr.Points3D(points, colors=[[255, 128, 0]], radii=0.03),
            static=True,
        )
        rr.log(
            "image/desired",
            rr.Points2D(desired_features, colors=[[0, 255, 0]], radii=4.0),
            static=True,
        )

    def log_record(self, record: HistoryRecord) -> None:
        """Log one servo step.

        Args:
            record: HistoryRecord from a ServoLoop
        """
        rr.set_time("step", sequence=record.step)

        rr.log(
            "image/current",
            rr.Points2D(record.features, colors=[[255, 0, 0]], radii=3.0),
        )
        rr.log(
            "world/camera",
            rr.Transform3D(
                translation=record.pose.translation,
                mat3x3=record.pose.rotation,
            ),
        )
        rr.log(
            "world/optical_axis",
            rr.Arrows3D(
                origins=[record.pose.position],
                vectors=[0.5 * record.pose.forward],
                colors=[[0, 128, 255]],
            ),
        )

        self._positions.append(record.pose.position)
        if len(self._positions) >= 2:
            rr.log(
                "world/trajectory",
                rr.LineStrips3D(
                    [np.array(self._positions)],
                    colors=[[255, 255, 0]],
                    radii=0.01,
                ),
            )

        rr.log("plots/error_norm", rr.Scalars(record.error_norm))
        if np.isfinite(record.jacobian_condition):
            rr.log("plots/condition", rr.Scalars(record.jacobian_condition))
        for name, value in zip(self._VELOCITY_NAMES, record.velocity):
            rr.log(f"plots/velocity/{name}", rr.Scalars(float(value)))

        if record.estimated_depth is not None:
            for i, depth in enumerate(record.estimated_depth):
                if np.isfinite(depth):
                    rr.log(f"plots/depth/estimated/{i}", rr.Scalars(float(depth)))
        if record.true_depth is not None:
            for i, depth in enumerate(record.true_depth):
                rr.log(f"plots/depth/true/{i}", rr.Scalars(float(depth)))

    def log_history(self, history: Iterable[HistoryRecord]) -> None:
        """Log a whole run, e.g. ServoResult.history."""
        for record in history:
            self.log_record(record)
