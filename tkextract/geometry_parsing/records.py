"""
Records produced by the extraction, consumed by the XML writer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple


# Shape kinds
BOX = "box"
TRAPEZOID = "trapezoid"
TUBE = "tube"
CONE = "cone"
POLYCONE = "polycone"

INTERSECTION = "intersection"


@dataclass
class Element:
    tag: str
    density: float
    atomic_weight: float
    atomic_number: int


@dataclass
class Composite:
    """Material mix; elements are (tag, mass fraction) pairs."""

    name: str
    density: float
    elements: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def fraction_sum(self):
        return sum(fraction for _, fraction in self.elements)


@dataclass
class Shape:
    """Geometric primitive. Box and trapezoid use half lengths, tubes and cones radii."""

    kind: str
    name: str
    dx: float = 0.0
    dy: float = 0.0
    dz: float = 0.0
    dxx: float = 0.0
    dyy: float = 0.0
    rmin: float = 0.0
    rmax: float = 0.0
    rmin1: float = 0.0
    rmax1: float = 0.0
    rmin2: float = 0.0
    rmax2: float = 0.0
    rzup: List[Tuple[float, float]] = field(default_factory=list)
    rzdown: List[Tuple[float, float]] = field(default_factory=list)


@dataclass
class ShapeOperation:
    name: str
    kind: str
    solid1: str
    solid2: str


@dataclass
class LogicalVolume:
    name: str
    shape: str
    material: str


@dataclass
class Translation:
    dx: float = 0.0
    dy: float = 0.0
    dz: float = 0.0


@dataclass
class Placement:
    parent: str
    child: str
    copy: int = 1
    trans: Translation = field(default_factory=Translation)
    rotation: str = ""


@dataclass
class Rotation:
    name: str
    thetax: float = 0.0
    phix: float = 0.0
    thetay: float = 0.0
    phiy: float = 0.0
    thetaz: float = 0.0
    phiz: float = 0.0


@dataclass
class AlgoParameter:
    """Algorithm argument; kind is 'string', 'numeric' or 'vector'."""

    kind: str
    name: str
    value: str


@dataclass
class AlgorithmCall:
    name: str
    parent: str
    parameters: List[AlgoParameter] = field(default_factory=list)

    def get(self, name):
        for param in self.parameters:
            if param.name == name:
                return param.value
        raise KeyError(f"Unknown algorithm parameter: {name}")


@dataclass
class ModuleROCInfo:
    name: str = ""
    rocrows: str = ""
    roccols: str = ""
    rocx: str = ""
    rocy: str = ""


@dataclass
class TopologySpec:
    name: str
    parameter: Tuple[str, str]
    partselectors: List[str] = field(default_factory=list)
    moduletypes: List[ModuleROCInfo] = field(default_factory=list)
    partextras: List[str] = field(default_factory=list)

    def add(self, selector, rocinfo=None, extra=None):
        self.partselectors.append(selector)
        self.moduletypes.append(rocinfo if rocinfo is not None else ModuleROCInfo())
        if extra is not None:
            self.partextras.append(extra)


@dataclass
class RILengthInfo:
    """Average radiation and interaction length of a layer or disc."""

    barrel: bool
    index: int
    rlength: float
    ilength: float


class RotationRegistry:
    """Rotations keyed by name; the first registration of a name wins."""

    def __init__(self):
        self._rotations: Dict[str, Rotation] = {}

    def register(self, rotation):
        if rotation.name not in self._rotations:
            self._rotations[rotation.name] = rotation
        return self._rotations[rotation.name]

    def get(self, name) -> Optional[Rotation]:
        return self._rotations.get(name)

    def __contains__(self, name):
        return name in self._rotations

    def __len__(self):
        return len(self._rotations)

    def __iter__(self) -> Iterator[Rotation]:
        return iter(self._rotations.values())

    def names(self):
        return list(self._rotations)

    def merge(self, other):
        for rotation in other:
            self.register(rotation)


@dataclass
class GeometryBundle:
    """All records of a run, in emission order."""

    elements: List[Element] = field(default_factory=list)
    composites: List[Composite] = field(default_factory=list)
    shapes: List[Shape] = field(default_factory=list)
    shape_ops: List[ShapeOperation] = field(default_factory=list)
    logic: List[LogicalVolume] = field(default_factory=list)
    positions: List[Placement] = field(default_factory=list)
    algos: List[AlgorithmCall] = field(default_factory=list)
    rotations: RotationRegistry = field(default_factory=RotationRegistry)
    specs: List[TopologySpec] = field(default_factory=list)
    lrilength: List[RILengthInfo] = field(default_factory=list)

    def merge(self, other):
        """Append every collection of ``other`` after the current content."""
        self.elements.extend(other.elements)
        self.composites.extend(other.composites)
        self.shapes.extend(other.shapes)
        self.shape_ops.extend(other.shape_ops)
        self.logic.extend(other.logic)
        self.positions.extend(other.positions)
        self.algos.extend(other.algos)
        self.rotations.merge(other.rotations)
        self.specs.extend(other.specs)
        self.lrilength.extend(other.lrilength)
        return self

    def add_volume(self, shape, material, namespace):
        """Append a shape and the logical volume made of it."""
        self.shapes.append(shape)
        logic = LogicalVolume(name=shape.name, shape=f"{namespace}:{shape.name}", material=material)
        self.logic.append(logic)
        return logic

    def find_shape(self, name):
        for shape in self.shapes:
            if shape.name == name:
                return shape
        raise KeyError(f"Unknown shape: {name}")

    def find_spec(self, name):
        for spec in self.specs:
            if spec.name == name:
                return spec
        raise KeyError(f"Unknown topology spec: {name}")

    def summary(self):
        return {
            'elements': len(self.elements),
            'composites': len(self.composites),
            'shapes': len(self.shapes),
            'shape_ops': len(self.shape_ops),
            'logic': len(self.logic),
            'positions': len(self.positions),
            'algos': len(self.algos),
            'rotations': len(self.rotations),
            'specs': len(self.specs),
            'lrilength': len(self.lrilength),
        }
