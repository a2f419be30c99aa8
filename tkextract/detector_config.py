import os
from typing import Dict


def _build_numeric_overrides() -> Dict[str, float]:
    """Read numeric overrides from the environment, ignoring unparsable values."""
    overrides: Dict[str, float] = {}
    for env_name, key in (("TKEXTRACT_EPSILON", "epsilon"), ("TKEXTRACT_Z_PIXFWD", "z_pixfwd")):
        env_value = os.getenv(env_name, "").strip()
        if not env_value:
            continue
        try:
            overrides[key] = float(env_value)
        except ValueError:
            continue
    return overrides


class ExtractorConfig:
    """Naming and numeric configuration shared by every extraction step"""

    # Clearance added around enclosing volumes (mm)
    DEFAULT_EPSILON = 0.01
    # z origin of the endcap container volume (mm)
    DEFAULT_Z_PIXFWD = 1454.0
    # Tolerance used to select points lying on a z extremum (mm)
    Z_EXTREMUM_TOLERANCE = 0.001

    DEFAULT_NAMES = {
        # namespaces
        'fileident': 'tracker',
        'newfileident': 'newtracker',
        'pixbarident': 'pixbar',
        'pixfwdident': 'pixfwd',
        # containers
        'barrel_container': 'Phase2OTBarrel',
        'endcap_container': 'Phase2OTForward',
        'tracker': 'Tracker',
        'tob': 'TOB',
        'tid': 'TID',
        # structural volumes
        'layer': 'Layer',
        'rod': 'Rod',
        'ring': 'Ring',
        'disc': 'Disc',
        'barrel_module': 'BModule',
        'endcap_module': 'EModule',
        'plus': 'Plus',
        'minus': 'Minus',
        # module content
        'lower': 'Lower',
        'upper': 'Upper',
        'wafer': 'Wafer',
        'active': 'Active',
        'ps': 'PS',
        'pixel': 'MacroPixel',
        'strip': 'Strip',
        '2s': '2S',
        'stereo': 'Stereo',
        'hybrid_composite': 'hybridcomposite',
        # services and supports
        'service': 'ser',
        'service_composite': 'serfcomp',
        'support': 'lazy',
        'support_composite': 'lazycomp',
        # materials
        'air': 'materials:Air',
        'sensor_silicon': 'SenSi',
        # rotations
        'unflipped_mod_in_rod': 'PlaceUnflippedModuleInRod',
        'flipped_mod_in_rod': 'PlaceFlippedModuleInRod',
        'flip_mod': 'FlipModule',
        # algorithms
        'phialt_algo': 'track:DDTrackerPhiAltAlgo',
        'ring_algo': 'track:DDTrackerRingAlgo',
        # topology
        'par_tail': 'Par',
        'tkddd_structure': 'TkDDDStructure',
        'subdet_layer': 'TOBLayer',
        'det_layer': 'TOBLayer',
        'subdet_rod': 'TOBRod',
        'det_rod': 'TOBRod',
        'subdet_barrel_stack': 'TOBStack',
        'det_barrel_stack': 'Phase2OTBarrelStack',
        'subdet_tobdet': 'TOBDet',
        'det_tobdet': 'DetUnit',
        'subdet_wheel': 'TIDWheel',
        'det_wheel': 'TIDWheel',
        'subdet_ring': 'TIDRing',
        'det_ring': 'TIDRing',
        'subdet_endcap_stack': 'TIDStack',
        'det_endcap_stack': 'Phase2OTEndcapStack',
        'subdet_tiddet': 'TIDModule',
        'det_tiddet': 'DetUnit',
    }

    def __init__(self, standalone=False, epsilon=None, z_pixfwd=None, names=None):
        """
        Parameters:
        -----------
        standalone : bool
            Write a standalone tracker description: records use the new file
            namespace and the container polycones are not built
        epsilon : float, optional
            Clearance around enclosing volumes (mm)
        z_pixfwd : float, optional
            z origin of the endcap container (mm)
        names : dict, optional
            Override individual entries of DEFAULT_NAMES
        """
        self.standalone = standalone
        self.epsilon = self.DEFAULT_EPSILON if epsilon is None else float(epsilon)
        self.z_pixfwd = self.DEFAULT_Z_PIXFWD if z_pixfwd is None else float(z_pixfwd)
        self.names = dict(self.DEFAULT_NAMES)
        if names:
            unknown = set(names) - set(self.DEFAULT_NAMES)
            if unknown:
                raise KeyError(f"Unknown name keys: {sorted(unknown)}")
            self.names.update(names)

    @property
    def namespace(self):
        return self.names['newfileident'] if self.standalone else self.names['fileident']

    @property
    def sensor_tag(self):
        return self.names['sensor_silicon']

    def ns(self, name):
        """Qualify a record name with the run namespace"""
        return f"{self.namespace}:{name}"

    def barrel_container_ref(self):
        return f"{self.names['pixbarident']}:{self.names['barrel_container']}"

    def endcap_container_ref(self):
        return f"{self.names['pixfwdident']}:{self.names['endcap_container']}"

    def __repr__(self):
        return (f"ExtractorConfig(standalone={self.standalone}, epsilon={self.epsilon}, "
                f"z_pixfwd={self.z_pixfwd})")


def get_extractor_config(standalone=False, **overrides):
    """Build a configuration, applying environment overrides before explicit ones."""
    values = _build_numeric_overrides()
    values.update(overrides)
    return ExtractorConfig(standalone=standalone, **values)
