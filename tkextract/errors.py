"""
Exceptions raised while extracting tracker geometry.

Every error is a ValueError so callers that already guard the extraction
with ``except ValueError`` keep working.
"""


class ExtractionError(ValueError):
    """Base class for fatal configuration or data defects found during a run"""


class UnknownModuleTypeError(ExtractionError):
    def __init__(self, module_type, module_name):
        self.module_type = module_type
        self.module_name = module_name
        super().__init__(f"Unknown module type '{module_type}' for module {module_name}")


class UnknownTargetVolumeError(ExtractionError):
    def __init__(self, target_id, module_name, reason="is not supported"):
        self.target_id = target_id
        self.module_name = module_name
        super().__init__(f"targetVolume {target_id} in module {module_name} {reason}")


class CompositeMassError(ExtractionError):
    def __init__(self, composite_name):
        self.composite_name = composite_name
        super().__init__(f"Composite {composite_name} has no mass to normalize")


class InvalidElementError(ExtractionError):
    def __init__(self, tag, radiation_length, atomic_weight):
        self.tag = tag
        super().__init__(
            f"Cannot derive atomic number for material {tag}: "
            f"radiation length {radiation_length} and atomic weight {atomic_weight} are unphysical"
        )


class UnknownNodeError(ExtractionError):
    def __init__(self, node):
        self.node = node
        super().__init__(f"Unknown structural node type: {type(node).__name__}")
