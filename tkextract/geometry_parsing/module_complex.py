"""
Decomposition of a module into the volumes around its sensors.

  Top View
  ------------------------------
  |          LSide             |
  |----------------------------|     y
  |     |                |     |     ^
  |BSide|     Between    |FSide|     |
  |     |                |     |     +----> x
  |----------------------------|
  |          RSide             |
  ------------------------------
                                            z
  Side View                                 ^
         ---------------- outer sensor      |
  ====== ================ ====== hybrids    +----> x
         ---------------- inner sensor
  ==============================
          support plate

LSide and RSide are front-end hybrids, BSide and FSide service hybrids.
"""

import logging
from enum import Enum
from typing import Dict, List

import numpy as np

from tkextract.errors import UnknownTargetVolumeError
from tkextract.geometry_parsing.materials import MM3_TO_CM3, create_composite
from tkextract.geometry_parsing.records import BOX, GeometryBundle, Placement, Shape, Translation
from tkextract.utils.vector_helpers import extrema, xy_radius

logger = logging.getLogger(__name__)


SENSOR_COMPONENTS = {"Sensor", "Sensors", "PS Sensor", "PS Sensors", "2S Sensor", "2S Sensors"}


class TargetVolume(Enum):
    """Destination of a module material element, as numbered in the material configuration"""

    HYBRID_FBLR_0 = 0
    INNER_SENSOR = 1
    OUTER_SENSOR = 2
    HYBRID_FRONT = 3
    HYBRID_BACK = 4
    HYBRID_LEFT = 5
    HYBRID_RIGHT = 6
    HYBRID_BETWEEN = 7
    SUPPORT_PLATE = 8
    HYBRID_FB = 34
    HYBRID_LR = 56
    HYBRID_FBLR_3456 = 3456

    @classmethod
    def from_id(cls, target_id, module_name=""):
        try:
            return cls(target_id)
        except ValueError as exc:
            raise UnknownTargetVolumeError(target_id, module_name) from exc

    @property
    def is_sensor(self):
        return self in (TargetVolume.INNER_SENSOR, TargetVolume.OUTER_SENSOR)

    def members(self):
        """Sub-volumes sharing a contribution sent to this target"""
        if self is TargetVolume.HYBRID_FB:
            return [TargetVolume.HYBRID_FRONT, TargetVolume.HYBRID_BACK]
        if self is TargetVolume.HYBRID_LR:
            return [TargetVolume.HYBRID_LEFT, TargetVolume.HYBRID_RIGHT]
        if self in (TargetVolume.HYBRID_FBLR_0, TargetVolume.HYBRID_FBLR_3456):
            return [TargetVolume.HYBRID_FRONT, TargetVolume.HYBRID_BACK,
                    TargetVolume.HYBRID_LEFT, TargetVolume.HYBRID_RIGHT]
        return [self]


class SubVolume:
    """A box inside a module, with full lengths and an offset from the module center"""

    def __init__(self, name, target, parent_name, dx, dy, dz, x, y, z):
        self.name = name
        self.target = target
        self.parent_name = parent_name
        self.dx = dx
        self.dy = dy
        self.dz = dz
        self.x = x
        self.y = y
        self.z = z
        self.mass = 0.0
        self.materials: Dict[str, float] = {}

    @property
    def volume(self):
        """Volume in mm3"""
        return self.dx * self.dy * self.dz

    @property
    def density(self):
        """Density in g/cm3, zero for empty or flat volumes"""
        if self.volume <= 0:
            return 0.0
        return self.mass / (self.volume * MM3_TO_CM3)

    def add_material(self, tag, grams):
        self.materials[tag] = self.materials.get(tag, 0.0) + grams

    def add_mass(self, grams):
        self.mass += grams

    def __repr__(self):
        return (f"SubVolume({self.name}, size=({self.dx:g}, {self.dy:g}, {self.dz:g}), "
                f"pos=({self.x:g}, {self.y:g}, {self.z:g}), mass={self.mass:g} g, density={self.density:g})")


class ModuleComplex:
    """Hybrid and support plate volumes of one module, plus the module's extrema"""

    def __init__(self, module_name, parent_name, cap, config):
        self.module_name = module_name
        self.parent_name = parent_name
        self.cap = cap
        self.module = cap.module
        self.config = config

        module = self.module
        self.width = module.width
        self.length = module.length
        self.sensor_thickness = module.sensor_thickness
        self.sensor_distance = module.ds_distance
        self.front_end_hybrid_width = module.front_end_hybrid_width
        self.service_hybrid_width = module.service_hybrid_width
        self.hybrid_thickness = module.hybrid_thickness
        self.support_plate_thickness = module.support_plate_thickness

        self.expanded_width = self.width + 2 * self.service_hybrid_width
        self.expanded_length = self.length + 2 * self.front_end_hybrid_width
        self.expanded_thickness = self.sensor_distance + 2 * (self.support_plate_thickness + self.sensor_thickness)

        self.volumes: List[SubVolume] = []
        self.vertices = np.empty((0, 3))
        self.expected_mass = 0.0
        self.xmin = self.xmax = self.ymin = self.ymax = self.zmin = self.zmax = 0.0
        self.rmin = self.rmax = self.rminatzmin = self.rmaxatzmax = 0.0
        self._built = False

    def build_sub_volumes(self):
        """Build the sub-volumes, compute the extrema and distribute the module material."""
        volumes = self._make_volumes()
        self._compute_extrema()
        self._distribute_material(volumes)
        self.volumes = [volumes[target] for target in (
            TargetVolume.HYBRID_FRONT, TargetVolume.HYBRID_BACK,
            TargetVolume.HYBRID_LEFT, TargetVolume.HYBRID_RIGHT,
            TargetVolume.HYBRID_BETWEEN, TargetVolume.SUPPORT_PLATE,
        )]
        self._built = True
        logger.debug(self.describe())
        return self

    def _make_volumes(self):
        name = self.module_name
        parent = self.parent_name
        shw = self.service_hybrid_width
        fehw = self.front_end_hybrid_width
        hth = self.hybrid_thickness
        side_x = (self.width + shw) / 2.
        side_y = (self.length + fehw) / 2.
        plate_z = -((self.sensor_distance + self.support_plate_thickness) / 2. + self.sensor_thickness)

        return {
            TargetVolume.HYBRID_FRONT: SubVolume(name + "FSide", TargetVolume.HYBRID_FRONT, parent,
                                                 shw, self.length, hth, side_x, 0., 0.),
            TargetVolume.HYBRID_BACK: SubVolume(name + "BSide", TargetVolume.HYBRID_BACK, parent,
                                                shw, self.length, hth, -side_x, 0., 0.),
            TargetVolume.HYBRID_LEFT: SubVolume(name + "LSide", TargetVolume.HYBRID_LEFT, parent,
                                                self.expanded_width, fehw, hth, 0., side_y, 0.),
            TargetVolume.HYBRID_RIGHT: SubVolume(name + "RSide", TargetVolume.HYBRID_RIGHT, parent,
                                                 self.expanded_width, fehw, hth, 0., -side_y, 0.),
            TargetVolume.HYBRID_BETWEEN: SubVolume(name + "Between", TargetVolume.HYBRID_BETWEEN, parent,
                                                   self.width, self.length, hth, 0., 0., 0.),
            TargetVolume.SUPPORT_PLATE: SubVolume(name + "SupportPlate", TargetVolume.SUPPORT_PLATE, parent,
                                                  self.expanded_width, self.expanded_length,
                                                  self.support_plate_thickness, 0., 0., plate_z),
        }

    def _compute_extrema(self):
        module = self.module
        center = module.center
        normal = module.normal
        poly = module.base_poly

        # half-width and half-length vectors of the nominal footprint
        mx = 0.5 * (poly[2] + poly[3]) - center
        my = 0.5 * (poly[1] + poly[2]) - center
        sx = self.expanded_width / self.width
        sy = self.expanded_length / self.length

        corners = np.array([
            center - sx * mx - sy * my,
            center - sx * mx + sy * my,
            center + sx * mx + sy * my,
            center + sx * mx - sy * my,
        ])
        half_thickness = 0.5 * self.expanded_thickness * normal
        top = corners + half_thickness
        bottom = corners - half_thickness
        self.vertices = np.vstack([top, bottom])

        self.xmin, self.xmax = extrema(self.vertices[:, 0])
        self.ymin, self.ymax = extrema(self.vertices[:, 1])
        self.zmin, self.zmax = extrema(self.vertices[:, 2])

        # edge mid-points of both faces, v0-v1, v1-v2, v2-v3, v3-v0
        mid_top = 0.5 * (top + np.roll(top, -1, axis=0))
        mid_bottom = 0.5 * (bottom + np.roll(bottom, -1, axis=0))
        points = np.vstack([top, bottom, mid_top, mid_bottom])

        radii = xy_radius(points)
        self.rmin, self.rmax = extrema(radii)

        tolerance = self.config.Z_EXTREMUM_TOLERANCE
        at_zmin = np.abs(points[:, 2] - self.zmin) < tolerance
        at_zmax = np.abs(points[:, 2] - self.zmax) < tolerance
        self.rminatzmin = float(np.min(radii[at_zmin]))
        self.rmaxatzmax = float(np.max(radii[at_zmax]))

    def _distribute_material(self, volumes):
        grouped_volume = {}
        for element in self.module.local_elements:
            if element.component_name in SENSOR_COMPONENTS:
                continue
            target = TargetVolume.from_id(element.target_volume, self.module_name)
            if target.is_sensor:
                raise UnknownTargetVolumeError(element.target_volume, self.module_name,
                                               reason="is only for sensors")

            grams = element.grams
            self.expected_mass += grams
            members = target.members()
            if len(members) == 1:
                volumes[target].add_material(element.element_name, grams)
                volumes[target].add_mass(grams)
                continue

            if target not in grouped_volume:
                grouped_volume[target] = sum(volumes[member].volume for member in members)
            total_volume = grouped_volume[target]
            for member in members:
                volumes[member].add_material(element.element_name, grams)
                if total_volume > 0:
                    volumes[member].add_mass(grams * volumes[member].volume / total_volume)
                else:
                    # flat hybrids: keep the mass balance, nothing will be emitted
                    volumes[member].add_mass(grams / len(members))

    # Accessors

    @property
    def total_mass(self):
        """Mass distributed over the sub-volumes"""
        return sum(volume.mass for volume in self.volumes)

    def emitted_volumes(self):
        return [volume for volume in self.volumes if volume.density > 0.]

    def sub_volume_bundle(self):
        """Shapes, logical volumes, placements and composites of the non-empty sub-volumes"""
        bundle = GeometryBundle()
        prefix = self.config.names['hybrid_composite']
        for volume in self.emitted_volumes():
            composite_name = prefix + volume.name
            bundle.composites.append(create_composite(composite_name, volume.density, volume.materials))
            bundle.add_volume(
                Shape(kind=BOX, name=volume.name, dx=volume.dx / 2., dy=volume.dy / 2., dz=volume.dz / 2.),
                self.config.ns(composite_name),
                self.config.namespace,
            )
            bundle.positions.append(Placement(
                parent=self.config.ns(volume.parent_name),
                child=self.config.ns(volume.name),
                trans=Translation(volume.x, volume.y, volume.z),
            ))
        return bundle

    def describe(self):
        center = self.module.center
        normal = self.module.normal
        lines = [
            f"ModuleComplex {self.module_name}",
            f"  center position : ({center[0]:g}, {center[1]:g}, {center[2]:g})",
            f"  normal vector   : ({normal[0]:g}, {normal[1]:g}, {normal[2]:g})",
            f"  expanded size   : {self.expanded_width:g} x {self.expanded_length:g} x {self.expanded_thickness:g}",
        ]
        lines.extend(f"  {volume!r}" for volume in self.volumes)
        lines.append(f"  total mass = {self.total_mass:g} ({self.expected_mass:g} is expected)")
        return "\n".join(lines)
