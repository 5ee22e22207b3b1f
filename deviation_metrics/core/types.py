"""
Shared Value Types
==================

Immutable values passed between the pipeline stages:

- Point3 / PointSet: world-space positions (meters)
- Severity, DeviationPoint, DeviationStatistics, DeviationAnalysis: comparison output (millimeters)
- AlignmentResult, ReferenceCorrespondence, PairAlignment: alignment input/output

A PointSet is a float64 NumPy array of shape (N, 3). Stages return new arrays
and never write into the arrays they receive.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import InvalidArgumentError


class Point3(NamedTuple):
    """Immutable world-space position."""
    x: float
    y: float
    z: float

    def to_array(self) -> np.ndarray:
        return np.array([self.x, self.y, self.z], dtype=np.float64)


PointLike = Union[Point3, Sequence[float], np.ndarray]
PointSetLike = Union[np.ndarray, Sequence[PointLike]]


def as_point3(value: PointLike, name: str = "point") -> Point3:
    """
    Coerce a 3-sequence to a Point3.

    Raises:
        InvalidArgumentError: If the value is not three finite numbers
    """
    try:
        arr = np.asarray(value, dtype=np.float64).reshape(-1)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"{name} is not a numeric 3-vector: {value!r}") from e

    if arr.shape != (3,):
        raise InvalidArgumentError(f"{name} must have exactly 3 components, got {arr.size}")
    if not np.all(np.isfinite(arr)):
        raise InvalidArgumentError(f"{name} has non-finite components: {value!r}")

    return Point3(float(arr[0]), float(arr[1]), float(arr[2]))


def as_point_array(points: PointSetLike) -> np.ndarray:
    """
    View any point collection as an (N, 3) float64 array.

    Raises:
        InvalidArgumentError: If the input cannot be shaped to (N, 3)
    """
    arr = np.asarray(points, dtype=np.float64)

    if arr.size == 0:
        return np.empty((0, 3), dtype=np.float64)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidArgumentError(f"Point set must have shape (N, 3), got {arr.shape}")

    return arr


def wrap_angle(theta: float) -> float:
    """Wrap an angle to (-pi, pi]."""
    wrapped = math.atan2(math.sin(theta), math.cos(theta))
    if wrapped == -math.pi:
        return math.pi
    return wrapped


class Severity(str, Enum):
    """Ordinal severity band of a deviation magnitude."""
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


@dataclass(frozen=True)
class DeviationPoint:
    """One reference position with its nearest-observed distance (mm)."""
    position: Point3
    deviation: float
    status: Severity


@dataclass(frozen=True)
class DeviationStatistics:
    """Aggregate statistics over a comparison run. All deviations in millimeters."""
    total_points: int = 0
    ok_count: int = 0
    warning_count: int = 0
    critical_count: int = 0
    avg_deviation: float = 0.0
    max_deviation: float = 0.0
    min_deviation: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_points': self.total_points,
            'ok_count': self.ok_count,
            'warning_count': self.warning_count,
            'critical_count': self.critical_count,
            'avg_deviation': self.avg_deviation,
            'max_deviation': self.max_deviation,
            'min_deviation': self.min_deviation,
            'units': 'millimeters',
        }


@dataclass(frozen=True)
class ElementDeviation:
    """Deviation summary for one named building element."""
    id: int
    element: str
    deviation: float
    status: Severity
    zone: str
    mean_deviation: float = 0.0
    point_count: int = 0


@dataclass(frozen=True)
class DeviationAnalysis:
    """Result of comparing a reference model against an observed model."""
    points: Tuple[DeviationPoint, ...] = ()
    statistics: DeviationStatistics = field(default_factory=DeviationStatistics)
    elements: Tuple[ElementDeviation, ...] = ()

    @classmethod
    def empty(cls) -> 'DeviationAnalysis':
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.statistics.total_points == 0

    @property
    def positions(self) -> np.ndarray:
        """(N, 3) array of analysed reference positions."""
        return as_point_array([p.position for p in self.points])

    @property
    def deviations(self) -> np.ndarray:
        """(N,) array of deviations in millimeters."""
        return np.array([p.deviation for p in self.points], dtype=np.float64)


@dataclass(frozen=True)
class AlignmentResult:
    """
    Translation, uniform scale and Euler XYZ rotation (radians) for one model.

    Applied to a point as p' = scale * R @ p + translation, the same TRS order
    a scene node uses for its local transform.
    """
    translation: Point3 = Point3(0.0, 0.0, 0.0)
    scale: float = 1.0
    rotation: Point3 = Point3(0.0, 0.0, 0.0)

    @classmethod
    def identity(cls) -> 'AlignmentResult':
        return cls()

    def rotation_matrix(self) -> np.ndarray:
        return euler_xyz_matrix(*self.rotation)

    def to_matrix(self) -> np.ndarray:
        """4x4 homogeneous matrix."""
        m = np.eye(4)
        m[:3, :3] = self.scale * self.rotation_matrix()
        m[:3, 3] = self.translation
        return m

    def apply(self, points: PointSetLike) -> np.ndarray:
        """Return transformed copy of the points."""
        pts = as_point_array(points)
        if len(pts) == 0:
            return pts.copy()
        return self.scale * pts @ self.rotation_matrix().T + np.asarray(self.translation)

    def then(self, other: 'AlignmentResult') -> 'AlignmentResult':
        """Compose: apply self first, then other."""
        R = other.rotation_matrix() @ self.rotation_matrix()
        t = other.scale * other.rotation_matrix() @ np.asarray(self.translation) + np.asarray(other.translation)

        if self.rotation.x == 0 and self.rotation.z == 0 and other.rotation.x == 0 and other.rotation.z == 0:
            rotation = Point3(0.0, wrap_angle(self.rotation.y + other.rotation.y), 0.0)
        else:
            rotation = matrix_to_euler_xyz(R)

        return AlignmentResult(
            translation=Point3(float(t[0]), float(t[1]), float(t[2])),
            scale=self.scale * other.scale,
            rotation=rotation,
        )


@dataclass(frozen=True)
class ReferenceCorrespondence:
    """
    A physical feature located in reference space and/or observed space.

    Either side may be unset while the user is still placing points.
    """
    reference: Optional[Point3] = None
    observed: Optional[Point3] = None
    name: str = ""

    def __post_init__(self):
        if self.reference is not None:
            object.__setattr__(self, 'reference', as_point3(self.reference, f"{self.name or 'correspondence'} reference"))
        if self.observed is not None:
            object.__setattr__(self, 'observed', as_point3(self.observed, f"{self.name or 'correspondence'} observed"))

    @property
    def is_complete(self) -> bool:
        return self.reference is not None and self.observed is not None


@dataclass(frozen=True)
class PairAlignment:
    """Transforms for both models of a comparison, plus the method that produced them."""
    reference: AlignmentResult
    observed: AlignmentResult
    method: str


def euler_xyz_matrix(rx: float, ry: float, rz: float) -> np.ndarray:
    """Rotation matrix for intrinsic Euler XYZ angles (R = Rx @ Ry @ Rz)."""
    cx, sx = math.cos(rx), math.sin(rx)
    cy, sy = math.cos(ry), math.sin(ry)
    cz, sz = math.cos(rz), math.sin(rz)

    Rx = np.array([[1, 0, 0], [0, cx, -sx], [0, sx, cx]])
    Ry = np.array([[cy, 0, sy], [0, 1, 0], [-sy, 0, cy]])
    Rz = np.array([[cz, -sz, 0], [sz, cz, 0], [0, 0, 1]])

    return Rx @ Ry @ Rz


def matrix_to_euler_xyz(R: np.ndarray) -> Point3:
    """Inverse of euler_xyz_matrix."""
    m13 = float(np.clip(R[0, 2], -1.0, 1.0))
    ry = math.asin(m13)

    if abs(m13) < 0.9999999:
        rx = math.atan2(-R[1, 2], R[2, 2])
        rz = math.atan2(-R[0, 1], R[0, 0])
    else:
        # Gimbal lock
        rx = math.atan2(R[2, 1], R[1, 1])
        rz = 0.0

    return Point3(rx, ry, rz)


def iter_points(points: np.ndarray) -> Iterable[Point3]:
    for row in points:
        yield Point3(float(row[0]), float(row[1]), float(row[2]))
