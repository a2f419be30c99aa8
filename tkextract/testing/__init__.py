"""Reference tracker layouts for tests and scripts."""

from tkextract.testing.simple_layout import (
    create_barrel_module,
    create_endcap_disc,
    create_flat_layer,
    create_inactive_surfaces,
    create_material_table,
    create_module,
    create_simple_tracker,
    create_tilted_layer,
    default_module_elements,
)

__all__ = [
    "create_barrel_module",
    "create_endcap_disc",
    "create_flat_layer",
    "create_inactive_surfaces",
    "create_material_table",
    "create_module",
    "create_simple_tracker",
    "create_tilted_layer",
    "default_module_elements",
]
