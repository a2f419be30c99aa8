from typing import List

from tkextract.errors import UnknownNodeError
from tkextract.geometry_parsing.detector_model import (
    Barrel, BarrelLayer, Endcap, EndcapDisc, ModuleCap, Tracker,
)


class LayerAggregator:
    """Collects barrel layers and endcap discs in a single pass over the tracker"""

    def __init__(self):
        self.barrel_layers: List[BarrelLayer] = []
        self.endcap_discs: List[EndcapDisc] = []

    def visit(self, node):
        """Walk a structural node and everything below it, in declaration order."""
        if isinstance(node, Tracker):
            for barrel in node.barrels:
                self.visit(barrel)
            for endcap in node.endcaps:
                self.visit(endcap)
        elif isinstance(node, Barrel):
            for layer in node.layers:
                self.visit(layer)
        elif isinstance(node, Endcap):
            for disc in node.discs:
                self.visit(disc)
        elif isinstance(node, BarrelLayer):
            self.barrel_layers.append(node)
        elif isinstance(node, EndcapDisc):
            self.endcap_discs.append(node)
        else:
            raise UnknownNodeError(node)
        return self

    @property
    def barrel_caps(self) -> List[List[ModuleCap]]:
        return [list(layer.module_caps) for layer in self.barrel_layers]

    @property
    def endcap_caps(self) -> List[List[ModuleCap]]:
        return [list(disc.module_caps) for disc in self.endcap_discs]


def aggregate_layers(tracker):
    """Return a LayerAggregator that has visited the whole tracker"""
    return LayerAggregator().visit(tracker)
