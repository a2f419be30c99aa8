import math
import logging

from tkextract.errors import CompositeMassError, InvalidElementError
from tkextract.geometry_parsing.records import Composite, Element

logger = logging.getLogger(__name__)


# mm3 -> cm3 for densities in g/cm3 from grams and mm3
MM3_TO_CM3 = 1e-3


def atomic_weight_from_interaction_length(ilength):
    """Empirical atomic weight estimate from the nuclear interaction length"""
    return math.pow(ilength / 35.0, 3)


def atomic_number(x0, a):
    """
    Invert the radiation length parametrization to get an atomic number.

    Parameters:
    -----------
    x0 : float
        Radiation length (g/cm2)
    a : float
        Atomic weight

    Returns:
    --------
    int : atomic number, or -1 if the inputs have no physical solution
    """
    if x0 == 0:
        return -1
    d = 4 - 4 * (1.0 - 181.0 * a / x0)
    if d > 0:
        return int(math.floor((math.sqrt(d) - 2.0) / 2.0 + 0.5))
    return -1


def analyse_elements(material_table):
    """Translate every material table row to an elementary material."""
    elements = []
    for row in material_table:
        weight = atomic_weight_from_interaction_length(row.interaction_length)
        z = atomic_number(row.radiation_length, weight)
        if z < 0:
            raise InvalidElementError(row.tag, row.radiation_length, weight)
        elements.append(Element(tag=row.tag, density=row.density, atomic_weight=weight, atomic_number=z))
    return elements


def create_composite(name, density, masses, exclude_tag=None):
    """
    Bundle a list of mass contributions into a composite material.

    Parameters:
    -----------
    name : str
        Name of the new composite
    density : float
        Overall density (g/cm3)
    masses : Mapping[str, float]
        Material tag -> mass in grams; fractions are sorted by tag
    exclude_tag : str, optional
        Material left out of the mix (the sensor material for active volumes)

    Returns:
    --------
    Composite with fractions summing to one over the included materials
    """
    included = [(tag, mass) for tag, mass in sorted(masses.items()) if exclude_tag is None or tag != exclude_tag]
    total = sum(mass for _, mass in included)
    if total <= 0:
        raise CompositeMassError(name)
    return Composite(name=name, density=density, elements=[(tag, mass / total) for tag, mass in included])


def module_composite_density(cap, exclude_sensors, sensor_tag):
    """Density of the material mix of a module, spread over its surface and thickness."""
    volume = cap.surface * cap.module.thickness
    if exclude_sensors:
        mass = sum(m for tag, m in cap.local_masses.items() if tag != sensor_tag)
    else:
        mass = cap.total_mass
    return mass / (volume * MM3_TO_CM3)


def inactive_composite_density(element):
    """Density of an inactive annulus from its total mass."""
    outer = element.inner_radius + element.r_width
    area = outer * outer - element.inner_radius * element.inner_radius
    return element.total_mass / (math.pi * element.z_length * area * MM3_TO_CM3)


def calculate_sensor_thickness(cap, material_table, sensor_tag):
    """Thickness of the sensor material implied by its mass, or 0.0 if it is not tabulated"""
    mass = sum(m for tag, m in cap.local_masses.items() if tag == sensor_tag)
    try:
        density = material_table.get_material(sensor_tag).density
    except KeyError:
        logger.debug("Sensor material %s not in material table", sensor_tag)
        return 0.0
    return mass / (density * cap.surface * MM3_TO_CM3)
