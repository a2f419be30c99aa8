import matplotlib.pyplot as plt
import mplhep as hep
from matplotlib.patches import Polygon, Rectangle

from tkextract.geometry_parsing.records import POLYCONE, TUBE


def rz_boxes(bundle, config):
    """
    Collect the r-z outline of every tube placed directly in a container.

    Disc placements are relative to the endcap z origin and are shifted back
    to global z; other placements are taken as they are.

    Returns:
    --------
    list of (name, rmin, rmax, zmin, zmax)
    """
    tubes = {shape.name: shape for shape in bundle.shapes if shape.kind == TUBE}
    containers = {config.barrel_container_ref(), config.endcap_container_ref()}
    disc_prefix = config.ns(config.names['disc'])
    boxes = []
    for placement in bundle.positions:
        if placement.parent not in containers:
            continue
        name = placement.child.split(":", 1)[-1]
        shape = tubes.get(name)
        if shape is None:
            continue
        z = placement.trans.dz
        if placement.child.startswith(disc_prefix):
            z += config.z_pixfwd
        boxes.append((name, shape.rmin, shape.rmax, z - shape.dz, z + shape.dz))
    return boxes


def plot_rz_envelopes(bundle, config, output_prefix=None, show=False):
    """
    Draw layers, discs, services and supports in the r-z plane, with the container outlines.

    Parameters:
    -----------
    bundle : GeometryBundle
        Result of an extraction run
    config : ExtractorConfig
        Configuration of that run
    output_prefix : str, optional
        Save the figure as <prefix>.png and <prefix>.pdf
    show : bool
        Open the figure window

    Returns:
    --------
    (fig, ax)
    """
    plt.style.use(hep.style.CMS)
    fig, ax = plt.subplots(figsize=(20, 10))

    boxes = rz_boxes(bundle, config)
    zmax = 1.0
    rmax = 1.0
    for name, rmin, r_out, z_low, z_high in boxes:
        service = not (name.startswith(config.names['layer']) or name.startswith(config.names['disc']))
        color = "tab:orange" if service else "tab:blue"
        ax.add_patch(Rectangle((z_low, rmin), z_high - z_low, r_out - rmin,
                               facecolor=color, edgecolor="black", alpha=0.4 if service else 0.7, lw=0.5))
        zmax = max(zmax, abs(z_low), abs(z_high))
        rmax = max(rmax, r_out)

    for shape in bundle.shapes:
        if shape.kind != POLYCONE:
            continue
        z_origin = config.z_pixfwd if shape.name == config.names['tid'] else 0.0
        # up is walked forward and down backward to close the outline
        outline = [(z + z_origin, r) for r, z in shape.rzup] + [(z + z_origin, r) for r, z in reversed(shape.rzdown)]
        ax.add_patch(Polygon(outline, closed=True, fill=False, edgecolor="tab:red", lw=1.5, ls="--",
                             label=shape.name))
        zmax = max(zmax, max(abs(z) for z, _ in outline))
        rmax = max(rmax, max(r for _, r in outline))

    print("rmax = ", rmax, " mm")
    print("zmax = ", zmax, " mm")

    ax.set_xlim(-1.05 * zmax, 1.05 * zmax)
    ax.set_ylim(0, 1.05 * rmax)
    ax.set_xlabel('z [mm]', fontsize=20)
    ax.set_ylabel('r [mm]', fontsize=20)
    if any(shape.kind == POLYCONE for shape in bundle.shapes):
        ax.legend(loc="upper right")
    fig.text(0.5, 0.97, 'Tracker volumes (r-z view)', fontsize=24, ha='center')

    plt.tight_layout()
    if output_prefix:
        fig.savefig(f"{output_prefix}.png", dpi=300)
        fig.savefig(f"{output_prefix}.pdf")
    if show:
        plt.show()
    return fig, ax
