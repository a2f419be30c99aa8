"""
Extraction of the tracker volume hierarchy.

Barrel layers and endcap discs are analysed one reference sector at a time
(modules with side > 0 and phi index 1 or 2); the rest of the detector is
reproduced by the replication algorithms attached to rods and rings.
"""

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, Optional

from tkextract.detector_config import get_extractor_config
from tkextract.errors import UnknownModuleTypeError
from tkextract.geometry_parsing.containers import analyse_containers
from tkextract.geometry_parsing.detector_model import RECTANGULAR, InactiveSurfaces
from tkextract.geometry_parsing.layer_aggregator import aggregate_layers
from tkextract.geometry_parsing.materials import analyse_elements
from tkextract.geometry_parsing.module_complex import ModuleComplex
from tkextract.geometry_parsing.records import (
    BOX, CONE, INTERSECTION, TRAPEZOID, TUBE,
    AlgorithmCall, GeometryBundle, LogicalVolume, ModuleROCInfo, Placement, RILengthInfo, Rotation,
    Shape, ShapeOperation, TopologySpec, Translation,
)
from tkextract.geometry_parsing.services import (
    analyse_barrel_services, analyse_endcap_services, analyse_supports,
)
from tkextract.utils import algorithm_params as ap

logger = logging.getLogger(__name__)


MODULE_TYPES = ("ptPS", "pt2S")


@dataclass
class TiltedRingInfo:
    """Envelope and placement data of one tilted ring of a barrel layer."""

    name: str
    childname: str
    is_z_plus: bool
    tilt_angle: float  # degrees
    bw_flipped: bool
    phi: int
    modules: int
    r1: float
    z1: float
    rmin: float
    zmin: float
    rminatzmin: float
    fw_flipped: bool = False
    r2: float = 0.0
    z2: float = 0.0
    rmax: float = 0.0
    zmax: float = 0.0
    rmaxatzmax: float = 0.0


@dataclass
class EndcapRingInfo:
    """Envelope and placement data of one ring of an endcap disc."""

    name: str
    childname: str
    is_z_plus: int
    fw_flipped: bool
    phi: float  # radians
    modules: int
    rmin: float
    rmid: float
    rmax: float
    zmin: float
    zmax: float
    zfw: float
    zbw: Optional[float] = None


class _Envelope:
    """Running extrema over the module complexes added to it"""

    def __init__(self):
        self.count = 0
        self.xmin = self.ymin = self.zmin = self.rmin = math.inf
        self.xmax = self.ymax = -math.inf
        self.zmax = self.rmax = 0.0

    def include_xy(self, complex_):
        self.xmin = min(self.xmin, complex_.xmin)
        self.xmax = max(self.xmax, complex_.xmax)
        self.ymin = min(self.ymin, complex_.ymin)
        self.ymax = max(self.ymax, complex_.ymax)

    def include_rz(self, complex_):
        self.count += 1
        self.zmin = min(self.zmin, complex_.zmin)
        self.zmax = max(self.zmax, complex_.zmax)
        self.rmin = min(self.rmin, complex_.rmin)
        self.rmax = max(self.rmax, complex_.rmax)

    @property
    def degenerate(self):
        return self.count == 0 or (self.rmax - self.rmin) == 0.0


def default_rotations(config):
    """Rotations every run relies on: module placement in rods and the z mirror flip."""
    names = config.names
    return [
        Rotation(name=names['unflipped_mod_in_rod'], thetax=90.0, phix=90.0, thetay=0.0, phiy=0.0,
                 thetaz=90.0, phiz=0.0),
        Rotation(name=names['flipped_mod_in_rod'], thetax=90.0, phix=270.0, thetay=0.0, phiy=0.0,
                 thetaz=90.0, phiz=180.0),
        Rotation(name=names['flip_mod'], thetax=90.0, phix=180.0, thetay=90.0, phiy=90.0,
                 thetaz=180.0, phiz=0.0),
    ]


def _in_reference_sector(module):
    return module.uni_ref.side > 0 and module.uni_ref.phi in (1, 2)


def _topology_spec(config, subdet_key, det_key):
    names = config.names
    return TopologySpec(name=names[subdet_key] + names['par_tail'],
                        parameter=(names['tkddd_structure'], names[det_key]))


def find_partner_module(caps, start, ring):
    """
    Find the module mirroring ``caps[start]`` on the other side of z = 0.

    Parameters:
    -----------
    caps : list of ModuleCap
        Modules of the layer
    start : int
        Index of the module whose partner is wanted; the scan starts there
    ring : int
        Position of the module along the rod

    Returns:
    --------
    ModuleCap or None : first module of the same rod with the same ring on the opposite side
    """
    if start >= len(caps):
        return None
    reference = caps[start].module.uni_ref
    plus = reference.side > 0
    for cap in caps[start:]:
        uni_ref = cap.module.uni_ref
        if uni_ref.ring != ring or uni_ref.phi != reference.phi:
            continue
        if (plus and uni_ref.side < 0) or (not plus and uni_ref.side > 0):
            return cap
    return None


def _active_suffix(module, upper, config):
    names = config.names
    if module.module_type == "ptPS":
        return names['ps'] + (names['strip'] if upper else names['pixel']) + names['active']
    if module.module_type == "pt2S":
        return names['2s'] + names['active']
    raise UnknownModuleTypeError(module.module_type, repr(module.uni_ref))


def _roc_info(module, sensor):
    return ModuleROCInfo(
        name=module.module_type,
        rocrows=str(sensor.roc_rows),
        roccols=str(sensor.roc_cols),
        rocx=str(sensor.roc_x),
        rocy=str(sensor.roc_y),
    )


def _add_sensor_volumes(bundle, module, mname, template, config, mspec):
    """
    Wafers and active surfaces of a module.

    Two-sensor modules get a lower and an upper wafer, at -gap/2 and +gap/2
    from the module mid-plane; the upper one carries the stereo rotation.
    """
    names = config.names
    ns = config.ns
    if module.module_type not in MODULE_TYPES:
        raise UnknownModuleTypeError(module.module_type, mname)

    two_sensors = module.num_sensors == 2
    if two_sensors:
        stack = [(names['lower'], module.inner_sensor, -module.ds_distance / 2.0),
                 (names['upper'], module.outer_sensor, module.ds_distance / 2.0)]
    else:
        stack = [("", module.inner_sensor, -module.ds_distance / 2.0)]

    wafers = []
    for index, (lowerupper, _, dz) in enumerate(stack):
        wafer = mname + lowerupper + names['wafer']
        bundle.add_volume(replace(template, name=wafer), names['air'], config.namespace)
        rotation = ""
        if index == 1 and module.stereo_rotation != 0:
            stereo = math.degrees(module.stereo_rotation)
            rot = bundle.rotations.register(Rotation(
                name=names['stereo'] + mname, thetax=90.0, phix=stereo, thetay=90.0, phiy=90.0 + stereo,
            ))
            rotation = ns(rot.name)
        bundle.positions.append(Placement(parent=ns(mname), child=ns(wafer), trans=Translation(dz=dz),
                                          rotation=rotation))
        wafers.append(wafer)

    for index, (lowerupper, sensor, _) in enumerate(stack):
        active = mname + lowerupper + _active_suffix(module, index == 1, config)
        bundle.add_volume(replace(template, name=active), ns(config.sensor_tag), config.namespace)
        bundle.positions.append(Placement(parent=ns(wafers[index]), child=ns(active)))
        mspec.add(active, _roc_info(module, sensor))


def _rod_rotation(module, config):
    key = 'flipped_mod_in_rod' if module.flipped else 'unflipped_mod_in_rod'
    return config.ns(config.names[key])


def _tilted_ring_cone(info, config):
    eps = config.epsilon
    tan_tilt = math.tan(math.radians(info.tilt_angle))
    dz = (info.zmax - info.zmin) / 2. + eps
    near_min = info.rminatzmin - eps * tan_tilt
    far_min = info.rminatzmin - 2 * dz * tan_tilt - eps * tan_tilt
    near_max = info.rmaxatzmax + eps * tan_tilt
    far_max = info.rmaxatzmax + 2 * dz * tan_tilt + eps * tan_tilt
    cone = Shape(kind=CONE, name=info.name + "Cone", dz=dz)
    if info.is_z_plus:
        cone.rmin1, cone.rmax1, cone.rmin2, cone.rmax2 = near_min, far_max, far_min, near_max
    else:
        cone.rmin1, cone.rmax1, cone.rmin2, cone.rmax2 = far_min, near_max, near_min, far_max
    return cone


def _tilted_ring_bundle(info, lname, config, rspec):
    """Cone-and-tube envelope of a tilted ring with the two algorithms filling it"""
    bundle = GeometryBundle()
    ns = config.ns
    eps = config.epsilon

    cone = _tilted_ring_cone(info, config)
    tube = Shape(kind=TUBE, name=info.name + "Tub", dz=cone.dz, rmin=info.rmin - eps, rmax=info.rmax + eps)
    bundle.shapes.extend([cone, tube])
    # ring volume is the overlap of the cone and the tube
    bundle.shape_ops.append(ShapeOperation(name=info.name, kind=INTERSECTION, solid1=cone.name, solid2=tube.name))
    bundle.logic.append(_logical(info.name, config.names['air'], config))
    bundle.positions.append(Placement(parent=ns(lname), child=ns(info.name),
                                      trans=Translation(dz=(info.z1 + info.z2) / 2.0)))
    rspec.add(info.name)

    step = 360. / info.modules
    for start_copy, start_angle, radius, center_z, flipped in (
            (1, 90. + step * (info.phi - 1), info.r1, (info.z1 - info.z2) / 2.0, info.bw_flipped),
            (2, 90. + step * info.phi, info.r2, (info.z2 - info.z1) / 2.0, info.fw_flipped)):
        bundle.algos.append(AlgorithmCall(name=config.names['ring_algo'], parent=ns(info.name), parameters=[
            ap.string_param(ap.CHILD, ns(info.childname)),
            ap.numeric_param(ap.N_MODS, info.modules // 2),
            ap.numeric_param(ap.START_COPY_NO, start_copy),
            ap.numeric_param(ap.INCR_COPY_NO, 2),
            ap.numeric_param(ap.RANGE_ANGLE, "360*deg"),
            ap.numeric_param(ap.START_ANGLE, ap.deg(start_angle)),
            ap.numeric_param(ap.RADIUS, radius),
            ap.vector_param(0, 0, center_z),
            ap.numeric_param(ap.IS_Z_PLUS, bool(info.is_z_plus)),
            ap.numeric_param(ap.TILT_ANGLE, ap.deg(info.tilt_angle)),
            ap.numeric_param(ap.IS_FLIPPED, bool(flipped)),
        ]))
    return bundle


def _logical(name, material, config):
    return LogicalVolume(name=name, shape=config.ns(name), material=material)


def _analyse_layer(index, layer, caps, config, specs):
    lspec, rspec, sspec, mspec = specs
    names = config.names
    ns = config.ns
    eps = config.epsilon
    lname = f"{names['layer']}{index}"
    rodname = f"{names['rod']}{index}"

    # build each reference module once
    complexes: Dict[int, ModuleComplex] = {}
    for position, cap in enumerate(caps):
        module = cap.module
        if _in_reference_sector(module):
            mname = f"{names['barrel_module']}{module.uni_ref.ring}{lname}"
            complexes[position] = ModuleComplex(mname, mname, cap, config).build_sub_volumes()

    envelope = _Envelope()
    flat_part = _Envelope()
    radius_in = radius_out = 0.0
    for position, complex_ in complexes.items():
        module = caps[position].module
        flat = layer.tilted and module.tilt_angle == 0
        if module.uni_ref.phi == 1:
            envelope.include_xy(complex_)
            if flat:
                flat_part.include_xy(complex_)
        # phi 2 differs from phi 1 in tilted layers, so both shape z and r
        envelope.include_rz(complex_)
        if flat:
            flat_part.include_rz(complex_)
        if module.uni_ref.ring in (1, 2):
            if module.uni_ref.phi == 1:
                radius_in += module.rho / 2
            else:
                radius_out += module.rho / 2

    if envelope.degenerate:
        logger.info("%s has no radial extent in the reference sector, skipped", lname)
        return None

    bundle = GeometryBundle()
    rtotal = itotal = 0.0
    count = 0
    rings_plus: Dict[int, TiltedRingInfo] = {}
    rings_minus: Dict[int, TiltedRingInfo] = {}

    for position, complex_ in complexes.items():
        cap = caps[position]
        module = cap.module
        ring = module.uni_ref.ring
        tilt_angle = math.degrees(module.tilt_angle) if layer.tilted else 0.0
        mname = complex_.module_name

        if module.uni_ref.phi == 1:
            ringname = f"{names['ring']}{ring}{lname}"

            bundle.add_volume(Shape(kind=BOX, name=mname,
                                    dx=complex_.expanded_width / 2.0,
                                    dy=complex_.expanded_length / 2.0,
                                    dz=complex_.expanded_thickness / 2.0),
                              names['air'], config.namespace)

            if tilt_angle == 0:
                bundle.positions.append(Placement(
                    parent=ns(rodname), child=ns(mname),
                    trans=Translation(dx=module.rho - radius_in, dz=module.center[2]),
                    rotation=_rod_rotation(module, config),
                ))
                partner = find_partner_module(caps, position, ring)
                if partner is not None:
                    bundle.positions.append(Placement(
                        parent=ns(rodname), child=ns(mname), copy=2,
                        trans=Translation(dx=partner.module.rho - radius_in, dz=partner.module.center[2]),
                        rotation=_rod_rotation(partner.module, config),
                    ))

            sspec.add(mname)
            template = Shape(kind=BOX, name=mname, dx=module.width / 2.0, dy=module.length / 2.0,
                             dz=module.sensor_thickness / 2.0)
            _add_sensor_volumes(bundle, module, mname, template, config, mspec)
            bundle.merge(complex_.sub_volume_bundle())

            if tilt_angle != 0 and ring not in rings_plus:
                info = TiltedRingInfo(
                    name=ringname + names['plus'], childname=mname, is_z_plus=True,
                    tilt_angle=tilt_angle, bw_flipped=module.flipped, phi=module.uni_ref.phi,
                    modules=layer.num_rods, r1=module.rho, z1=module.center[2],
                    rmin=complex_.rmin, zmin=complex_.zmin, rminatzmin=complex_.rminatzmin,
                )
                rings_plus[ring] = info
                rings_minus[ring] = replace(info, name=ringname + names['minus'], is_z_plus=False,
                                            z1=-module.center[2])

            rtotal += cap.radiation_length
            itotal += cap.interaction_length
            count += 1

        if layer.tilted and module.uni_ref.phi == 2:
            for side_rings, sign in ((rings_plus, 1.0), (rings_minus, -1.0)):
                info = side_rings.get(ring)
                if info is None:
                    continue
                info.fw_flipped = module.flipped
                info.r2 = module.rho
                info.z2 = sign * module.center[2]
                info.rmax = complex_.rmax
                info.zmax = complex_.zmax
                info.rmaxatzmax = complex_.rmaxatzmax

    if count > 0:
        bundle.lrilength.append(RILengthInfo(barrel=True, index=index, rlength=rtotal / count,
                                             ilength=itotal / count))

    # rod
    rod_envelope = flat_part if layer.tilted and flat_part.count else envelope
    bundle.add_volume(Shape(kind=BOX, name=rodname,
                            dx=(rod_envelope.ymax - rod_envelope.ymin) / 2 + eps,
                            dy=(rod_envelope.xmax - rod_envelope.xmin) / 2 + eps,
                            dz=rod_envelope.zmax + eps),
                      names['air'], config.namespace)
    rspec.add(rodname)

    bundle.algos.append(AlgorithmCall(name=names['phialt_algo'], parent=ns(lname), parameters=[
        ap.string_param(ap.CHILD, ns(rodname)),
        ap.numeric_param(ap.TILT, ap.deg(layer.tilt + 90)),
        ap.numeric_param(ap.START_ANGLE, ap.deg(layer.start_angle)),
        ap.numeric_param(ap.RANGE_ANGLE, "360*deg"),
        ap.numeric_param(ap.RADIUS_IN, ap.mm(radius_in)),
        ap.numeric_param(ap.RADIUS_OUT, ap.mm(radius_out)),
        ap.numeric_param(ap.Z_POSITION, "0.0*mm"),
        ap.numeric_param(ap.NUMBER, layer.num_rods),
        ap.numeric_param(ap.START_COPY_NO, "1"),
        ap.numeric_param(ap.INCR_COPY_NO, "1"),
    ]))

    # tilted rings, z- side first
    for side_rings in (rings_minus, rings_plus):
        for ring in sorted(side_rings):
            info = side_rings[ring]
            if info.modules > 0:
                bundle.merge(_tilted_ring_bundle(info, lname, config, rspec))

    # layer
    bundle.add_volume(Shape(kind=TUBE, name=lname,
                            rmin=envelope.rmin - 2 * eps,
                            rmax=envelope.rmax + 2 * eps,
                            dz=envelope.zmax + 2 * eps),
                      names['air'], config.namespace)
    bundle.positions.append(Placement(parent=config.barrel_container_ref(), child=ns(lname)))
    lspec.add(lname)
    return bundle


def analyse_layers(aggregator, config):
    """
    Volumes, placements, algorithms and topology of the barrel layers.

    Parameters:
    -----------
    aggregator : LayerAggregator
        Aggregator that has visited the tracker
    config : ExtractorConfig
        Naming and numeric configuration

    Returns:
    --------
    GeometryBundle with the barrel records; topology specs come last, in the
    order layer, rod, stack, module
    """
    bundle = GeometryBundle()
    specs = (
        _topology_spec(config, 'subdet_layer', 'det_layer'),
        _topology_spec(config, 'subdet_rod', 'det_rod'),
        _topology_spec(config, 'subdet_barrel_stack', 'det_barrel_stack'),
        _topology_spec(config, 'subdet_tobdet', 'det_tobdet'),
    )
    for index, (layer, caps) in enumerate(zip(aggregator.barrel_layers, aggregator.barrel_caps), start=1):
        layer_bundle = _analyse_layer(index, layer, caps, config, specs)
        if layer_bundle is not None:
            bundle.merge(layer_bundle)
    bundle.specs.extend(spec for spec in specs if spec.partselectors)
    return bundle


def _endcap_module_shape(module, complex_, mname):
    if module.shape == RECTANGULAR:
        return Shape(kind=BOX, name=mname,
                     dx=complex_.expanded_width / 2.0,
                     dy=complex_.expanded_length / 2.0,
                     dz=complex_.expanded_thickness / 2.0)
    return Shape(kind=TRAPEZOID, name=mname,
                 dx=module.min_width / 2.0 + module.service_hybrid_width,
                 dxx=module.max_width / 2.0 + module.service_hybrid_width,
                 dy=module.length / 2.0 + module.front_end_hybrid_width,
                 dyy=module.length / 2.0 + module.front_end_hybrid_width,
                 dz=module.thickness / 2.0 + module.support_plate_thickness)


def _endcap_ring_algorithms(info, ring_ref, config):
    ns = config.ns
    step = 360. / info.modules
    # azimuth of the reference module in degrees, not a multiple of the ring pitch
    start = math.degrees(info.phi)
    ring_center = (info.zmin + info.zmax) / 2.0
    zbw = info.zfw if info.zbw is None else info.zbw
    algos = []
    # forward modules take the odd copy numbers, backward ones the even
    for start_copy, start_angle, z, flipped in ((1, start, info.zfw, info.fw_flipped),
                                                 (2, start + step, zbw, not info.fw_flipped)):
        algos.append(AlgorithmCall(name=config.names['ring_algo'], parent=ring_ref, parameters=[
            ap.string_param(ap.CHILD, ns(info.childname)),
            ap.numeric_param(ap.N_MODS, info.modules // 2),
            ap.numeric_param(ap.START_COPY_NO, start_copy),
            ap.numeric_param(ap.INCR_COPY_NO, 2),
            ap.numeric_param(ap.RANGE_ANGLE, "360*deg"),
            ap.numeric_param(ap.START_ANGLE, ap.deg(start_angle)),
            ap.numeric_param(ap.RADIUS, info.rmid),
            ap.vector_param(0, 0, z - ring_center),
            ap.numeric_param(ap.IS_Z_PLUS, info.is_z_plus),
            ap.numeric_param(ap.TILT_ANGLE, "90*deg"),
            ap.numeric_param(ap.IS_FLIPPED, bool(flipped)),
        ]))
    return algos


def _analyse_disc(index, disc, caps, config, specs):
    dspec, rspec, sspec, mspec = specs
    names = config.names
    ns = config.ns
    eps = config.epsilon
    dname = f"{names['disc']}{index}"

    complexes: Dict[int, ModuleComplex] = {}
    envelope = _Envelope()
    ring_zmin: Dict[int, float] = {}
    ring_zmax: Dict[int, float] = {}
    for position, cap in enumerate(caps):
        module = cap.module
        if not _in_reference_sector(module):
            continue
        ring = module.uni_ref.ring
        mname = f"{names['endcap_module']}{ring}{dname}"
        complex_ = ModuleComplex(mname, mname, cap, config).build_sub_volumes()
        complexes[position] = complex_
        envelope.include_rz(complex_)
        ring_zmin[ring] = min(ring_zmin.get(ring, math.inf), complex_.zmin)
        ring_zmax[ring] = max(ring_zmax.get(ring, 0.0), complex_.zmax)

    if envelope.degenerate:
        logger.info("%s has no radial extent in the reference sector, skipped", dname)
        return None

    zmin, zmax = envelope.zmin, envelope.zmax
    bundle = GeometryBundle()
    rtotal = itotal = 0.0
    count = 0
    rings: Dict[int, EndcapRingInfo] = {}

    for position, complex_ in complexes.items():
        cap = caps[position]
        module = cap.module
        ring = module.uni_ref.ring
        mname = complex_.module_name

        if module.uni_ref.phi == 1:
            rname = f"{names['ring']}{ring}{dname}"
            bundle.add_volume(_endcap_module_shape(module, complex_, mname), names['air'], config.namespace)
            sspec.add(mname)

            kind = BOX if module.shape == RECTANGULAR else TRAPEZOID
            template = Shape(kind=kind, name=mname,
                             dx=module.min_width / 2.0, dxx=module.max_width / 2.0,
                             dy=module.length / 2.0, dyy=module.length / 2.0,
                             dz=module.sensor_thickness / 2.0)
            _add_sensor_volumes(bundle, module, mname, template, config, mspec)
            bundle.merge(complex_.sub_volume_bundle())

            if ring not in rings:
                rings[ring] = EndcapRingInfo(
                    name=rname, childname=mname,
                    is_z_plus=module.uni_ref.side,
                    fw_flipped=module.flipped,
                    phi=module.phi,
                    modules=disc.rings.get(ring, 0),
                    rmin=complex_.rmin,
                    rmid=module.rho,
                    rmax=complex_.rmax,
                    zmin=ring_zmin[ring],
                    zmax=ring_zmax[ring],
                    zfw=module.center[2],
                )

            rtotal += cap.radiation_length
            itotal += cap.interaction_length
            count += 1

        if module.uni_ref.phi == 2 and ring in rings:
            rings[ring].zbw = module.center[2]

    if count > 0:
        bundle.lrilength.append(RILengthInfo(barrel=False, index=index, rlength=rtotal / count,
                                             ilength=itotal / count))

    disc_center = (zmin + zmax) / 2.0
    for ring in sorted(rings):
        info = rings[ring]
        if info.modules <= 0:
            continue
        bundle.add_volume(Shape(kind=TUBE, name=info.name,
                                rmin=info.rmin - eps,
                                rmax=info.rmax + eps,
                                dz=(info.zmax - info.zmin) / 2.0 + eps),
                          names['air'], config.namespace)
        bundle.positions.append(Placement(parent=ns(dname), child=ns(info.name),
                                          trans=Translation(dz=(info.zmin + info.zmax) / 2.0 - disc_center)))
        rspec.add(info.name)
        bundle.algos.extend(_endcap_ring_algorithms(info, ns(info.name), config))

    bundle.add_volume(Shape(kind=TUBE, name=dname,
                            rmin=envelope.rmin - 2 * eps,
                            rmax=envelope.rmax + 2 * eps,
                            dz=(zmax - zmin) / 2.0 + 2 * eps),
                      names['air'], config.namespace)
    bundle.positions.append(Placement(parent=config.endcap_container_ref(), child=ns(dname),
                                      trans=Translation(dz=disc_center - config.z_pixfwd)))
    dspec.add(dname, extra="")
    return bundle


def analyse_discs(aggregator, config):
    """
    Volumes, placements, algorithms and topology of the z+ endcap discs.

    Discs at negative z are left to the mirrored copy of the endcap container.
    """
    bundle = GeometryBundle()
    specs = (
        _topology_spec(config, 'subdet_wheel', 'det_wheel'),
        _topology_spec(config, 'subdet_ring', 'det_ring'),
        _topology_spec(config, 'subdet_endcap_stack', 'det_endcap_stack'),
        _topology_spec(config, 'subdet_tiddet', 'det_tiddet'),
    )
    for index, (disc, caps) in enumerate(zip(aggregator.endcap_discs, aggregator.endcap_caps), start=1):
        if disc.min_z <= 0:
            continue
        disc_bundle = _analyse_disc(index, disc, caps, config, specs)
        if disc_bundle is not None:
            bundle.merge(disc_bundle)
    bundle.specs.extend(spec for spec in specs if spec.partselectors)
    return bundle


def analyse(material_table, tracker, inactive=None, config=None):
    """
    Extract every record the XML writer needs from a tracker and its material.

    Parameters:
    -----------
    material_table : MaterialTable
        Global material table
    tracker : Tracker
        Root of the detector model
    inactive : InactiveSurfaces, optional
        Services and supports; nothing is exported for them when omitted
    config : ExtractorConfig, optional
        Defaults to get_extractor_config()

    Returns:
    --------
    GeometryBundle built from scratch for this run
    """
    if config is None:
        config = get_extractor_config()
    if inactive is None:
        inactive = InactiveSurfaces()

    logger.info("Starting analysis...")
    bundle = GeometryBundle()
    for rotation in default_rotations(config):
        bundle.rotations.register(rotation)

    aggregator = aggregate_layers(tracker)

    if not config.standalone:
        bundle.shapes.extend(analyse_containers(aggregator, config))
        logger.info("Containers done.")

    bundle.elements.extend(analyse_elements(material_table))
    logger.info("Elementary materials done.")
    bundle.merge(analyse_layers(aggregator, config))
    logger.info("Barrel layers done.")
    bundle.merge(analyse_discs(aggregator, config))
    logger.info("Endcap discs done.")
    bundle.merge(analyse_barrel_services(inactive, config))
    logger.info("Barrel services done.")
    bundle.merge(analyse_endcap_services(inactive, config))
    logger.info("Endcap services done.")
    bundle.merge(analyse_supports(inactive, config))
    logger.info("Support structures done.")
    logger.info("Analysis done.")
    return bundle

