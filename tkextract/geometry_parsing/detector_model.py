"""
In-memory description of a tracker layout, as handed over by the detector
model builder.

The structural hierarchy is expressed with plain node classes (Tracker,
Barrel, BarrelLayer, Endcap, EndcapDisc); the aggregator dispatches on the
node type.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Dict, List, Optional

import numpy as np


RECTANGULAR = "rectangular"
WEDGE = "wedge"


@dataclass
class MaterialRow:
    """One entry of the global material table."""

    tag: str
    density: float  # g/cm3
    radiation_length: float  # g/cm2
    interaction_length: float  # g/cm2


class MaterialTable:
    """Ordered material rows with lookup by tag"""

    def __init__(self, rows=None):
        self.rows: List[MaterialRow] = list(rows or [])

    def __len__(self):
        return len(self.rows)

    def __iter__(self):
        return iter(self.rows)

    def get_material(self, tag):
        for row in self.rows:
            if row.tag == tag:
                return row
        raise KeyError(f"Material {tag} not found in material table")


@dataclass
class Sensor:
    """Readout chip layout of one sensor."""

    roc_rows: int = 0
    roc_cols: int = 0
    roc_x: int = 0
    roc_y: int = 0


@dataclass
class UniRef:
    """Unique reference of a module inside its layer or disc."""

    side: int
    ring: int
    phi: int


@dataclass
class MaterialElement:
    """A mass contribution of the module, tagged with its destination sub-volume."""

    component_name: str
    element_name: str
    target_volume: int
    grams: float


@dataclass
class Module:
    """Geometry of a single detector module.

    Attributes
    ----------
    center : np.ndarray
        Module center in the global frame (mm).
    normal : np.ndarray
        Unit vector normal to the sensor plane.
    base_poly : np.ndarray
        (4, 3) array with the footprint vertices v0..v3 (v0-v1 and v2-v3 run
        along the length, v1-v2 along the width).
    tilt_angle : float
        Tilt of the module with respect to the layer axis (radians).
    stereo_rotation : float
        Rotation of the upper sensor (radians).
    """

    uni_ref: UniRef
    center: np.ndarray
    normal: np.ndarray
    base_poly: np.ndarray
    length: float
    min_width: float
    max_width: float
    thickness: float
    sensor_thickness: float
    ds_distance: float = 0.0
    service_hybrid_width: float = 0.0
    front_end_hybrid_width: float = 0.0
    hybrid_thickness: float = 0.0
    support_plate_thickness: float = 0.0
    tilt_angle: float = 0.0
    flipped: bool = False
    module_type: str = "pt2S"
    num_sensors: int = 2
    stereo_rotation: float = 0.0
    shape: str = RECTANGULAR
    inner_sensor: Sensor = field(default_factory=Sensor)
    outer_sensor: Optional[Sensor] = None
    local_elements: List[MaterialElement] = field(default_factory=list)

    def __post_init__(self):
        self.center = np.asarray(self.center, dtype=float)
        self.normal = np.asarray(self.normal, dtype=float)
        self.base_poly = np.asarray(self.base_poly, dtype=float).reshape(4, 3)
        if self.outer_sensor is None:
            # single-sensor modules expose the same sensor twice
            self.outer_sensor = self.inner_sensor

    @property
    def area(self):
        return 0.5 * (self.min_width + self.max_width) * self.length

    @property
    def width(self):
        return self.area / self.length

    @property
    def rho(self):
        return math.hypot(self.center[0], self.center[1])

    @property
    def phi(self):
        return math.atan2(self.center[1], self.center[0])


@dataclass
class ModuleCap:
    """A module together with its material budget."""

    module: Module
    local_masses: Dict[str, float] = field(default_factory=dict)
    radiation_length: float = 0.0
    interaction_length: float = 0.0
    surface: Optional[float] = None

    def __post_init__(self):
        if self.surface is None:
            self.surface = self.module.area

    @property
    def total_mass(self):
        return sum(self.local_masses.values())


@dataclass
class BarrelLayer:
    """A barrel layer: rods of modules arranged around the beam axis."""

    module_caps: List[ModuleCap]
    num_rods: int
    tilted: bool = False
    tilt: float = 0.0  # degrees
    start_angle: float = 0.0  # degrees


@dataclass
class EndcapDisc:
    """An endcap disc: rings of modules at fixed |z|."""

    module_caps: List[ModuleCap]
    rings: Dict[int, int]  # ring index -> number of modules
    min_z: float

    @property
    def num_rings(self):
        return len(self.rings)


@dataclass
class Barrel:
    name: str
    layers: List[BarrelLayer] = field(default_factory=list)


@dataclass
class Endcap:
    name: str
    discs: List[EndcapDisc] = field(default_factory=list)


@dataclass
class Tracker:
    """Root of the structural hierarchy."""

    name: str
    barrels: List[Barrel] = field(default_factory=list)
    endcaps: List[Endcap] = field(default_factory=list)


class Category(IntEnum):
    """Categories of inactive material."""

    NO_CAT = 0
    B_SER = 1
    E_SER = 2
    B_SUP = 3
    E_SUP = 4
    O_SUP = 5
    T_SUP = 6
    U_SUP = 7


@dataclass
class InactiveElement:
    """An annular volume of service or support material."""

    category: Category
    inner_radius: float
    r_width: float
    z_offset: float
    z_length: float
    local_masses: Dict[str, float] = field(default_factory=dict)

    @property
    def total_mass(self):
        return sum(self.local_masses.values())


@dataclass
class InactiveSurfaces:
    barrel_services: List[InactiveElement] = field(default_factory=list)
    endcap_services: List[InactiveElement] = field(default_factory=list)
    supports: List[InactiveElement] = field(default_factory=list)
