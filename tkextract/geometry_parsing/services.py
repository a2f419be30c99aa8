"""
Services and supports: inactive material grouped into annular tube volumes.

Every exported volume lives on the z+ side and is mirrored to z- with the
module flip rotation (copy 2).
"""

import logging

from tkextract.geometry_parsing.detector_model import Category
from tkextract.geometry_parsing.materials import create_composite, inactive_composite_density
from tkextract.geometry_parsing.records import TUBE, GeometryBundle, Placement, Shape, Translation

logger = logging.getLogger(__name__)


BARREL_SUPPORT_CATEGORIES = {Category.B_SUP, Category.T_SUP, Category.U_SUP, Category.O_SUP}
CENTERED_SUPPORT_CATEGORIES = {Category.O_SUP, Category.T_SUP}


def _representative_z(element):
    return int(abs(element.z_offset + element.z_length / 2.0))


def _tube(name, element):
    return Shape(
        kind=TUBE,
        name=name,
        dz=element.z_length / 2.0,
        rmin=element.inner_radius,
        rmax=element.inner_radius + element.r_width,
    )


def _add_mirrored_pair(bundle, parent, child, dz, config):
    bundle.positions.append(Placement(parent=parent, child=child, copy=1, trans=Translation(dz=dz)))
    bundle.positions.append(Placement(
        parent=parent, child=child, copy=2, trans=Translation(dz=-dz),
        rotation=config.ns(config.names['flip_mod']),
    ))


def _analyse_services(elements, parent, config, barrel):
    bundle = GeometryBundle()
    names = config.names
    seen = set()
    previous_inner_radius = None

    for element in elements:
        inner_radius = int(element.inner_radius)
        if barrel and int(element.z_offset) == 0:
            # central services repeat once per layer; keep one per radius
            if previous_inner_radius == inner_radius:
                continue
            previous_inner_radius = inner_radius

        if element.z_offset + element.z_length <= 0:
            continue

        z_rep = _representative_z(element)
        category = int(element.category)
        matname = f"{names['service_composite']}{category}R{inner_radius}Z{z_rep}"
        shapename = f"{names['service']}{category}R{inner_radius}Z{z_rep}"

        if element.total_mass <= 0:
            logger.warning("%s is not exported because it is empty.", shapename)
            continue

        key = (element.category, inner_radius, z_rep)
        if key in seen:
            logger.debug("%s already exported, skipping duplicate", shapename)
            continue
        seen.add(key)

        bundle.composites.append(create_composite(matname, inactive_composite_density(element), element.local_masses))
        shape = _tube(shapename, element)
        bundle.add_volume(shape, config.ns(matname), config.namespace)
        _add_mirrored_pair(bundle, parent, config.ns(shapename), element.z_offset + shape.dz, config)

    return bundle


def analyse_barrel_services(inactive, config):
    """One composite, tube and mirrored placement pair per barrel service volume on the z+ side."""
    return _analyse_services(inactive.barrel_services, config.barrel_container_ref(), config, barrel=True)


def analyse_endcap_services(inactive, config):
    """Same as the barrel services, placed in the endcap container."""
    return _analyse_services(inactive.endcap_services, config.endcap_container_ref(), config, barrel=False)


def _support_parent(category, config):
    if category in BARREL_SUPPORT_CATEGORIES:
        return config.barrel_container_ref()
    if category == Category.E_SUP:
        return config.endcap_container_ref()
    return config.ns(config.names['tracker'])


def analyse_supports(inactive, config):
    """
    Export the support structures.

    The composite of a category is built from the first support of that
    category that carries mass; later supports of the same category reuse it.
    """
    bundle = GeometryBundle()
    names = config.names
    composites = {}
    seen = set()

    for element in inactive.supports:
        category = element.category
        matname = f"{names['support_composite']}{int(category)}"
        z_rep = int(element.z_length / 2.0 + element.z_offset)
        shapename = f"{names['support']}{int(category)}R{int(element.inner_radius)}Z{z_rep}"

        if element.total_mass <= 0:
            logger.warning("%s is not exported because it is empty.", shapename)
            continue
        if shapename in seen:
            logger.debug("%s already exported, skipping duplicate", shapename)
            continue
        seen.add(shapename)

        if category not in composites:
            composites[category] = create_composite(matname, inactive_composite_density(element), element.local_masses)
            bundle.composites.append(composites[category])

        shape = _tube(shapename, element)
        bundle.add_volume(shape, config.ns(matname), config.namespace)
        if category in CENTERED_SUPPORT_CATEGORIES:
            dz = 0.0
        else:
            dz = element.z_offset + shape.dz
        _add_mirrored_pair(bundle, _support_parent(category, config), config.ns(shapename), dz, config)

    return bundle
