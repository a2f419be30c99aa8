"""
Polycone profiles of the volumes enclosing the barrel and the endcap.

Profiles are two (r, z) point lists: ``up`` is meant to be read first to
last and ``down`` last to first, so that together they walk around the
enclosing polygon.
"""

from typing import List, Tuple

from tkextract.geometry_parsing.module_complex import ModuleComplex
from tkextract.geometry_parsing.records import POLYCONE, Shape

RZ = Tuple[float, float]


def _in_reference_sector(module):
    return module.uni_ref.side > 0 and module.uni_ref.phi in (1, 2)


def barrel_layer_extents(aggregator, config):
    """(rmin, rmax, zmax) of every barrel layer that has modules in the reference sector"""
    names = config.names
    extents = []
    for layer_index, caps in enumerate(aggregator.barrel_caps, start=1):
        rmin = float('inf')
        rmax = 0.0
        zmax = 0.0
        found = False
        for cap in caps:
            module = cap.module
            if not _in_reference_sector(module):
                continue
            name = f"{names['barrel_module']}{module.uni_ref.ring}{names['layer']}{layer_index}"
            complex_ = ModuleComplex(name, name, cap, config).build_sub_volumes()
            rmin = min(rmin, complex_.rmin)
            rmax = max(rmax, complex_.rmax)
            zmax = max(zmax, complex_.zmax)
            found = True
        if found:
            extents.append((rmin, rmax, zmax))
    return extents


def barrel_profile(extents) -> Tuple[List[RZ], List[RZ]]:
    """Build the barrel container profile from per-layer (rmin, rmax, zmax), inner layer first."""
    up: List[RZ] = []
    down: List[RZ] = []
    rmax = zmin = zmax = 0.0
    for index, (lrmin, lrmax, lzmax) in enumerate(extents):
        lzmin = -lzmax
        if index == 0:
            up.append((lrmin, lzmin))
            down.append((lrmin, lzmax))
        elif lzmax != zmax:
            # step in z between this layer and the previous one
            r = lrmin if lzmax > zmax else rmax
            up.append((r, zmin))
            down.append((r, zmax))
            up.append((r, lzmin))
            down.append((r, lzmax))
        if index == len(extents) - 1:
            up.append((lrmax, lzmin))
            down.append((lrmax, lzmax))
        rmax = lrmax
        if lzmin < 0:
            zmin = lzmin
        if lzmax > 0:
            zmax = lzmax
    return up, down


def endcap_disc_extents(aggregator, config):
    """(rmin, rmax, zmin, zmax) per disc, from the first module of every ring"""
    names = config.names
    extents = []
    for disc_index, caps in enumerate(aggregator.endcap_caps, start=1):
        rings = set()
        rmin = float('inf')
        rmax = 0.0
        zmin = float('inf')
        zmax = 0.0
        for cap in caps:
            ring = cap.module.uni_ref.ring
            if ring in rings:
                continue
            rings.add(ring)
            name = f"{names['endcap_module']}{ring}{names['disc']}{disc_index}"
            complex_ = ModuleComplex(name, name, cap, config).build_sub_volumes()
            rmin = min(rmin, complex_.rmin)
            rmax = max(rmax, complex_.rmax)
            zmin = min(zmin, complex_.zmin)
            zmax = max(zmax, complex_.zmax)
        if rings:
            extents.append((rmin, rmax, zmin, zmax))
    return extents


def endcap_profile(extents, z_origin) -> Tuple[List[RZ], List[RZ]]:
    """Build the z+ endcap container profile; z values are relative to ``z_origin``."""
    up: List[RZ] = []
    down: List[RZ] = []
    # discs before the first one reaching z > 0 do not shape the container
    first = next((index for index, extent in enumerate(extents) if extent[3] > 0), len(extents))
    forward = extents[first:]
    rmin = rmax = zmax = 0.0
    for index, (lrmin, lrmax, lzmin, lzmax) in enumerate(forward):
        if index == 0:
            rmin = lrmin
            rmax = lrmax
            up.append((rmax, lzmin - z_origin))
            down.append((rmin, lzmin - z_origin))
        elif rmax > lrmax:
            # larger -> smaller disc: step at the end of the previous disc
            up.append((rmax, zmax - z_origin))
            down.append((rmin, zmax - z_origin))
            rmax, rmin = lrmax, lrmin
            up.append((rmax, zmax - z_origin))
            down.append((rmin, zmax - z_origin))
        elif rmax < lrmax:
            # smaller -> larger disc: step at the start of this disc
            up.append((rmax, lzmin - z_origin))
            down.append((rmin, lzmin - z_origin))
            rmax, rmin = lrmax, lrmin
            up.append((rmax, lzmin - z_origin))
            down.append((rmin, lzmin - z_origin))
        zmax = lzmax
        if index == len(forward) - 1:
            up.append((rmax, zmax - z_origin))
            down.append((rmin, zmax - z_origin))
    return up, down


def analyse_containers(aggregator, config):
    """Polycone shapes of the barrel (TOB) and endcap (TID) containers"""
    shapes = []
    up, down = barrel_profile(barrel_layer_extents(aggregator, config))
    if up and down:
        shapes.append(Shape(kind=POLYCONE, name=config.names['tob'], rzup=up, rzdown=down))
    up, down = endcap_profile(endcap_disc_extents(aggregator, config), config.z_pixfwd)
    if up and down:
        shapes.append(Shape(kind=POLYCONE, name=config.names['tid'], rzup=up, rzdown=down))
    return shapes
