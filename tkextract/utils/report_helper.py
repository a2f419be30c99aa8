"""
Summaries of an extraction run, for logs and for a JSON report next to the
generated geometry.
"""

import json
from typing import Dict, Mapping, Optional, Sequence


def radiation_length_table(bundle) -> Dict[str, Dict[str, float]]:
    """Average radiation and interaction length per layer (L<n>) and disc (D<n>)."""
    table = {}
    for info in bundle.lrilength:
        key = f"{'L' if info.barrel else 'D'}{info.index}"
        table[key] = {"radiation_length": info.rlength, "interaction_length": info.ilength}
    return table


def summarize_bundle(bundle, config) -> Dict[str, object]:
    payload = {
        "namespace": config.namespace,
        "standalone": config.standalone,
        "epsilon_mm": config.epsilon,
        "z_pixfwd_mm": config.z_pixfwd,
        "counts": bundle.summary(),
        "topology": {spec.name: list(spec.partselectors) for spec in bundle.specs},
        "rotations": bundle.rotations.names(),
        "material_budget": radiation_length_table(bundle),
    }
    return payload


def print_summary(summary: Mapping[str, object]) -> None:
    print("=" * 60)
    print(f"Extraction summary (namespace '{summary['namespace']}')")
    print("=" * 60)
    for kind, count in summary["counts"].items():
        print(f"  {kind:<12s}: {count}")
    for key, values in summary["material_budget"].items():
        print(f"  {key:<4s} x/X0 = {values['radiation_length']:.4f}, "
              f"x/L0 = {values['interaction_length']:.4f}")


def save_extraction_report(
    report_path: str,
    summary: Mapping[str, object],
    assumptions: Optional[Sequence[str]] = None,
) -> None:
    payload = {
        "extraction": summary,
        "assumptions": list(assumptions or []),
    }
    with open(report_path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)
