"""
End-to-end tests of the extraction on the reference tracker layout
"""

import math

import pytest

from tkextract import analyse, get_extractor_config
from tkextract.errors import UnknownModuleTypeError
from tkextract.geometry_parsing.detector_model import (
    Barrel, BarrelLayer, Endcap, EndcapDisc, InactiveSurfaces, Tracker,
)
from tkextract.geometry_parsing.extractor import (
    analyse_discs,
    analyse_layers,
    default_rotations,
    find_partner_module,
)
from tkextract.geometry_parsing.layer_aggregator import aggregate_layers
from tkextract.geometry_parsing.module_complex import ModuleComplex
from tkextract.geometry_parsing.records import CONE, POLYCONE, TRAPEZOID, TUBE
from tkextract.testing import (
    create_barrel_module,
    create_endcap_disc,
    create_flat_layer,
    create_inactive_surfaces,
    create_tilted_layer,
)


def _positions(bundle, child):
    return [placement for placement in bundle.positions if placement.child == child]


def _algos(bundle, parent):
    return [algo for algo in bundle.algos if algo.parent == parent]


def _single_layer_tracker(*layers):
    return Tracker(name="Test", barrels=[Barrel(name="Barrel", layers=list(layers))])


def _index_of(caps, target):
    return next(index for index, cap in enumerate(caps) if cap is target)


def _find_cap(layer, side, ring, phi):
    for cap in layer.module_caps:
        ref = cap.module.uni_ref
        if (ref.side, ref.ring, ref.phi) == (side, ring, phi):
            return cap
    raise LookupError((side, ring, phi))


class TestBundleInvariants:
    """Properties every run must satisfy"""

    def test_composite_fractions(self, bundle):
        assert bundle.composites
        for composite in bundle.composites:
            assert composite.fraction_sum == pytest.approx(1.0, abs=1e-9), composite.name

    def test_logical_volumes_reference_shapes(self, bundle, config):
        solids = {shape.name for shape in bundle.shapes} | {op.name for op in bundle.shape_ops}
        for logic in bundle.logic:
            assert logic.shape == config.ns(logic.name)
            assert logic.name in solids
            assert logic.material

    def test_placements_resolve(self, bundle, config):
        volumes = {config.ns(logic.name) for logic in bundle.logic}
        external = {config.barrel_container_ref(), config.endcap_container_ref(), config.ns("Tracker")}
        for placement in bundle.positions:
            assert placement.child in volumes
            assert placement.parent in volumes | external

    def test_rotation_names_unique(self, bundle, config):
        names = bundle.rotations.names()

        assert len(names) == len(set(names))
        assert names[:3] == [rotation.name for rotation in default_rotations(config)]

    def test_emitted_sub_volumes_have_mass(self, bundle):
        sub_volume_shapes = [shape for shape in bundle.shapes
                             if shape.name.endswith(("FSide", "BSide", "LSide", "RSide", "Between", "SupportPlate"))]
        assert sub_volume_shapes
        for shape in sub_volume_shapes:
            assert shape.dx > 0 and shape.dy > 0 and shape.dz > 0

    def test_runs_are_deterministic(self, material_table, tracker, config):
        first = analyse(material_table, tracker, create_inactive_surfaces(), config)
        second = analyse(material_table, tracker, create_inactive_surfaces(), config)

        assert first.summary() == second.summary()
        assert first.shapes == second.shapes
        assert first.positions == second.positions
        assert first.algos == second.algos
        assert first.rotations.names() == second.rotations.names()

    def test_topology_spec_order(self, bundle):
        assert [spec.name for spec in bundle.specs] == [
            "TOBLayerPar", "TOBRodPar", "TOBStackPar", "TOBDetPar",
            "TIDWheelPar", "TIDRingPar", "TIDStackPar", "TIDModulePar",
        ]
        for spec in bundle.specs:
            assert len(spec.partselectors) == len(spec.moduletypes)

    def test_radiation_length_summary(self, bundle):
        summary = [(info.barrel, info.index) for info in bundle.lrilength]

        assert summary == [(True, 1), (True, 2), (False, 2)]
        assert all(info.rlength == pytest.approx(0.012) for info in bundle.lrilength)
        assert all(info.ilength == pytest.approx(0.004) for info in bundle.lrilength)


class TestContainersAndNamespaces:

    def test_containers_built(self, bundle):
        polycones = [shape.name for shape in bundle.shapes if shape.kind == POLYCONE]

        assert polycones == ["TOB", "TID"]

    def test_standalone_run(self, material_table, tracker):
        config = get_extractor_config(standalone=True)
        bundle = analyse(material_table, tracker, create_inactive_surfaces(), config)

        assert not [shape for shape in bundle.shapes if shape.kind == POLYCONE]
        assert all(logic.shape.startswith("newtracker:") for logic in bundle.logic)

    def test_defaults_without_inactive_surfaces(self, material_table, tracker):
        bundle = analyse(material_table, tracker)

        assert not [shape for shape in bundle.shapes if shape.name.startswith(("ser", "lazy"))]


class TestBarrelLayers:
    """Flat layer (Layer2) and tilted layer (Layer1) of the reference tracker"""

    def test_rod_algorithm(self, bundle, config):
        (algo,) = _algos(bundle, "tracker:Layer2")

        assert algo.name == config.names['phialt_algo']
        assert algo.get("ChildName") == "tracker:Rod2"
        assert algo.get("Tilt") == "90*deg"
        assert algo.get("RadiusIn") == "601*mm"
        assert algo.get("RadiusOut") == "611*mm"
        assert algo.get("Number") == "12"
        assert algo.get("RangeAngle") == "360*deg"
        assert [param.name for param in algo.parameters] == [
            "ChildName", "Tilt", "StartAngle", "RangeAngle", "RadiusIn", "RadiusOut",
            "ZPosition", "Number", "StartCopyNo", "IncrCopyNo",
        ]

    def test_modules_placed_in_rod_with_partner(self, bundle):
        placements = _positions(bundle, "tracker:BModule1Layer2")

        assert [placement.copy for placement in placements] == [1, 2]
        plus, minus = placements
        assert plus.parent == "tracker:Rod2"
        assert plus.trans.dx == pytest.approx(-1.0)
        assert plus.trans.dz == pytest.approx(90.0)
        assert minus.trans.dz == pytest.approx(-90.0)
        assert plus.rotation == "tracker:PlaceUnflippedModuleInRod"
        flipped = _positions(bundle, "tracker:BModule2Layer2")[0]
        assert flipped.rotation == "tracker:PlaceFlippedModuleInRod"

    def test_rod_box(self, bundle):
        rod = bundle.find_shape("Rod2")

        assert rod.dx == pytest.approx(55.01)
        assert rod.dy == pytest.approx(2.61)
        assert rod.dz == pytest.approx(535.01)

    def test_layer_tube(self, bundle, config):
        layer = bundle.find_shape("Layer2")

        assert layer.kind == TUBE
        assert layer.rmin == pytest.approx(598.38)
        assert layer.rmax > 613.6
        assert layer.dz == pytest.approx(535.02)
        (placement,) = _positions(bundle, "tracker:Layer2")
        assert placement.parent == config.barrel_container_ref()

    def test_wafers_and_active_surfaces(self, bundle):
        wafers = _positions(bundle, "tracker:BModule1Layer2LowerWafer") + \
            _positions(bundle, "tracker:BModule1Layer2UpperWafer")

        assert [placement.trans.dz for placement in wafers] == pytest.approx([-0.9, 0.9])
        assert all(placement.parent == "tracker:BModule1Layer2" for placement in wafers)
        active = bundle.find_shape("BModule1Layer2Lower2SActive")
        assert (active.dx, active.dy, active.dz) == pytest.approx((50.0, 75.0, 0.1))
        logic = [lv for lv in bundle.logic if lv.name == "BModule1Layer2Lower2SActive"][0]
        assert logic.material == "tracker:SenSi"

    def test_module_topology_carries_roc_info(self, bundle):
        spec = bundle.find_spec("TOBDetPar")
        index = spec.partselectors.index("BModule1Layer1LowerPSMacroPixelActive")

        assert spec.partselectors[index + 1] == "BModule1Layer1UpperPSStripActive"
        assert spec.moduletypes[index].name == "ptPS"
        assert spec.moduletypes[index].rocrows == "960"
        assert spec.moduletypes[index].roccols == "32"
        assert spec.moduletypes[index + 1].roccols == "2"
        assert "BModule1Layer2Upper2SActive" in spec.partselectors

    def test_stack_topology(self, bundle):
        spec = bundle.find_spec("TOBStackPar")

        assert spec.parameter == ("TkDDDStructure", "Phase2OTBarrelStack")
        assert spec.partselectors[:4] == ["BModule1Layer1", "BModule2Layer1", "BModule3Layer1", "BModule4Layer1"]
        assert all(info.name == "" for info in spec.moduletypes)

    def test_empty_layer_is_skipped(self, material_table, config):
        minus_only = BarrelLayer(
            module_caps=[cap for cap in create_flat_layer().module_caps if cap.module.uni_ref.side < 0],
            num_rods=12,
        )
        tracker = _single_layer_tracker(minus_only, create_flat_layer())
        bundle = analyse(material_table, tracker, InactiveSurfaces(), config)
        names = [shape.name for shape in bundle.shapes]

        assert "Layer1" not in names
        assert "Layer2" in names
        assert bundle.find_spec("TOBLayerPar").partselectors == ["Layer2"]
        assert [(info.barrel, info.index) for info in bundle.lrilength] == [(True, 2)]
        assert not [placement for placement in bundle.positions
                    if "Layer1" in placement.child or "Layer1" in placement.parent]
        assert not _algos(bundle, "tracker:Layer1")

    def test_unknown_module_type(self, config):
        layer = create_flat_layer(module_type="pt3X")
        aggregator = aggregate_layers(_single_layer_tracker(layer))

        with pytest.raises(UnknownModuleTypeError, match="pt3X"):
            analyse_layers(aggregator, config)

    def test_stereo_rotation(self, config):
        caps = [
            create_barrel_module(side, ring, phi, 600.0 + 10 * (phi - 1), 0.0, side * 90.0, stereo_rotation=0.01)
            for phi in (1, 2) for side in (1, -1) for ring in (1, 2)
        ]
        layer = BarrelLayer(module_caps=caps, num_rods=2)
        bundle = analyse_layers(aggregate_layers(_single_layer_tracker(layer)), config)
        rotation = bundle.rotations.get("StereoBModule1Layer1")

        assert rotation is not None
        assert rotation.phix == pytest.approx(math.degrees(0.01))
        assert rotation.phiy == pytest.approx(90.0 + math.degrees(0.01))
        upper = _positions(bundle, "tracker:BModule1Layer1UpperWafer")[0]
        assert upper.rotation == "tracker:StereoBModule1Layer1"
        assert bundle.rotations.names().count("StereoBModule1Layer1") == 1


class TestPartnerLookup:

    def test_partner_on_other_side(self):
        layer = create_flat_layer()
        caps = layer.module_caps
        start = _index_of(caps, _find_cap(layer, 1, 2, 1))
        partner = find_partner_module(caps, start, 2)

        assert partner is _find_cap(layer, -1, 2, 1)

    def test_partner_must_share_the_rod(self):
        layer = create_flat_layer()
        caps = [cap for cap in layer.module_caps
                if not (cap.module.uni_ref.phi == 1 and cap.module.uni_ref.side < 0)]
        start = _index_of(caps, _find_cap(layer, 1, 1, 1))

        assert find_partner_module(caps, start, 1) is None

    def test_start_past_the_end(self):
        assert find_partner_module([], 0, 1) is None


class TestTiltedRings:
    """Layer1 of the reference tracker: two flat rings and two tilted rings per side"""

    def test_ring_order(self, bundle):
        assert [op.name for op in bundle.shape_ops] == [
            "Ring3Layer1Minus", "Ring4Layer1Minus", "Ring3Layer1Plus", "Ring4Layer1Plus",
        ]
        for op in bundle.shape_ops:
            assert op.solid1 == op.name + "Cone"
            assert op.solid2 == op.name + "Tub"

    def test_tilted_modules_not_in_rod(self, bundle):
        assert _positions(bundle, "tracker:BModule3Layer1") == []
        assert len(_positions(bundle, "tracker:BModule1Layer1")) == 2

    def test_envelope_contains_ring_modules(self, bundle, config):
        layer = create_tilted_layer()
        first = ModuleComplex("a", "a", _find_cap(layer, 1, 3, 1), config).build_sub_volumes()
        second = ModuleComplex("b", "b", _find_cap(layer, 1, 3, 2), config).build_sub_volumes()
        tube = bundle.find_shape("Ring3Layer1PlusTub")
        cone = bundle.find_shape("Ring3Layer1PlusCone")

        assert cone.kind == CONE
        assert tube.rmin < min(first.rmin, second.rmin)
        assert tube.rmax > max(first.rmax, second.rmax)
        assert tube.dz == pytest.approx((second.zmax - first.zmin) / 2 + config.epsilon)
        assert cone.rmin1 < first.rminatzmin
        assert cone.rmax2 > second.rmaxatzmax

    def test_cone_orientation_mirrors(self, bundle):
        plus = bundle.find_shape("Ring3Layer1PlusCone")
        minus = bundle.find_shape("Ring3Layer1MinusCone")

        assert plus.rmin2 < plus.rmin1
        assert plus.rmax1 > plus.rmax2
        assert minus.rmin1 == pytest.approx(plus.rmin2)
        assert minus.rmax2 == pytest.approx(plus.rmax1)

    def test_ring_placements(self, bundle):
        (plus,) = _positions(bundle, "tracker:Ring3Layer1Plus")
        (minus,) = _positions(bundle, "tracker:Ring3Layer1Minus")

        assert plus.parent == "tracker:Layer1"
        assert plus.trans.dz == pytest.approx(170.0)
        assert minus.trans.dz == pytest.approx(-170.0)

    def test_ring_algorithms(self, bundle, config):
        backward, forward = _algos(bundle, "tracker:Ring3Layer1Plus")

        assert backward.name == forward.name == config.names['ring_algo']
        assert backward.get("ChildName") == "tracker:BModule3Layer1"
        assert backward.get("N") == "8"
        assert (backward.get("StartCopyNo"), forward.get("StartCopyNo")) == ("1", "2")
        assert backward.get("IncrCopyNo") == "2"
        assert backward.get("StartAngle") == "90*deg"
        assert forward.get("StartAngle") == "112.5*deg"
        assert backward.get("Radius") == "265"
        assert forward.get("Radius") == "273"
        assert backward.get("IsZPlus") == "1"
        assert backward.get("TiltAngle") == "40*deg"
        assert (backward.get("IsFlipped"), forward.get("IsFlipped")) == ("0", "1")
        minus_backward, _ = _algos(bundle, "tracker:Ring3Layer1Minus")
        assert minus_backward.get("IsZPlus") == "0"


class TestEndcapDiscs:
    """Disc2 of the reference tracker sits at z = +1500; Disc1 at -1500 is not exported"""

    def test_only_positive_disc(self, bundle):
        names = {shape.name for shape in bundle.shapes}

        assert "Disc1" not in names
        assert "Disc2" in names
        assert bundle.find_spec("TIDWheelPar").partselectors == ["Disc2"]
        assert bundle.find_spec("TIDWheelPar").partextras == [""]

    def test_disc_placement(self, bundle, config):
        (placement,) = _positions(bundle, "tracker:Disc2")
        disc = bundle.find_shape("Disc2")

        assert placement.parent == config.endcap_container_ref()
        assert placement.trans.dz == pytest.approx(1500.0 - config.z_pixfwd)
        assert disc.dz == pytest.approx(7.6 + 2 * config.epsilon)

    def test_wedge_module_shapes(self, bundle):
        module = bundle.find_shape("EModule1Disc2")
        wafer = bundle.find_shape("EModule1Disc2LowerWafer")

        assert module.kind == TRAPEZOID
        assert (module.dx, module.dxx, module.dy, module.dyy) == pytest.approx((45.0, 60.0, 60.0, 60.0))
        assert module.dz == pytest.approx(1.6)
        assert wafer.kind == TRAPEZOID
        assert (wafer.dx, wafer.dxx, wafer.dy, wafer.dz) == pytest.approx((40.0, 55.0, 50.0, 0.1))
        assert _positions(bundle, "tracker:EModule1Disc2LowerWafer")[0].parent == "tracker:EModule1Disc2"

    def test_rings(self, bundle):
        assert bundle.find_spec("TIDRingPar").partselectors == ["Ring1Disc2", "Ring2Disc2"]
        (placement,) = _positions(bundle, "tracker:Ring1Disc2")
        assert placement.parent == "tracker:Disc2"
        assert placement.trans.dz == pytest.approx(0.0)

    def test_ring_algorithms(self, bundle):
        forward, backward = _algos(bundle, "tracker:Ring2Disc2")

        assert forward.get("N") == "14"
        assert forward.get("StartAngle") == "0*deg"
        assert backward.get("StartAngle") == "12.8571*deg"
        assert forward.get("Center") == "0,0,6"
        assert backward.get("Center") == "0,0,-6"
        assert forward.get("TiltAngle") == "90*deg"
        assert (forward.get("IsFlipped"), backward.get("IsFlipped")) == ("0", "1")
        assert (forward.get("StartCopyNo"), backward.get("StartCopyNo")) == ("1", "2")

    def test_discs_alone(self, tracker, config):
        bundle = analyse_discs(aggregate_layers(tracker), config)

        assert [spec.name for spec in bundle.specs] == ["TIDWheelPar", "TIDRingPar", "TIDStackPar", "TIDModulePar"]
        assert bundle.lrilength[0].index == 2

    def test_disc_without_reference_modules_is_skipped(self, config):
        full = create_endcap_disc(z=1500.0)
        outside = [cap for cap in full.module_caps if cap.module.uni_ref.phi > 2]
        hollow = EndcapDisc(module_caps=outside, rings=dict(full.rings), min_z=full.min_z)
        tracker = Tracker(name="Test", endcaps=[Endcap(name="Endcap", discs=[hollow])])
        bundle = analyse_discs(aggregate_layers(tracker), config)

        assert bundle.shapes == []
        assert bundle.positions == []
        assert bundle.algos == []
        assert bundle.specs == []
        assert bundle.lrilength == []

    def test_skipped_disc_keeps_its_index(self, config):
        full = create_endcap_disc(z=1400.0)
        outside = [cap for cap in full.module_caps if cap.module.uni_ref.phi > 2]
        hollow = EndcapDisc(module_caps=outside, rings=dict(full.rings), min_z=full.min_z)
        tracker = Tracker(name="Test", endcaps=[Endcap(name="Endcap", discs=[hollow, create_endcap_disc(z=1500.0)])])
        bundle = analyse_discs(aggregate_layers(tracker), config)
        names = {shape.name for shape in bundle.shapes}

        assert "Disc1" not in names
        assert "Disc2" in names
        assert bundle.find_spec("TIDWheelPar").partselectors == ["Disc2"]
        assert [(info.barrel, info.index) for info in bundle.lrilength] == [(False, 2)]
        assert not [placement for placement in bundle.positions if "Disc1" in placement.parent + placement.child]
