# ring_visual.py

import matplotlib.pyplot as plt
import numpy as np

from hashing_ring import ConsistentHashRing, vnode_key

SCENARIOS = [
    ("Baseline", "consistent", "modulo"),
    ("One disk removed", "lconsistent", "lmodulo"),
    ("One disk added", "mconsistent", "mmodulo"),
]


def plot_distribution(report, path=None):
    """Bar chart of per-disk file counts, one panel per scenario."""
    fig, axes = plt.subplots(1, len(SCENARIOS), figsize=(15, 4), sharey=True)
    disks = np.arange(report.disks + 1)
    width = 0.4

    for ax, (title, c_column, m_column) in zip(axes, SCENARIOS):
        c_counts = [getattr(d, c_column) for d in report.disk_data]
        m_counts = [getattr(d, m_column) for d in report.disk_data]
        ax.bar(disks - width / 2, c_counts, width, label=f"Consistent ({report.variant})")
        ax.bar(disks + width / 2, m_counts, width, label="Modulo")
        ax.axhline(report.num_files / report.disks, color="grey", linestyle="--", linewidth=1)
        ax.set_title(title)
        ax.set_xlabel("Disk")
        ax.set_xticks(disks)

    axes[0].set_ylabel("Number of Files")
    axes[0].legend()
    fig.suptitle("File Distribution Across Disks")
    fig.tight_layout()

    if path:
        fig.savefig(path)
        plt.close(fig)
    else:
        plt.show()
    return fig


def get_virtual_nodes_map(ring, limit=5):
    ring_map = {}
    if isinstance(ring, ConsistentHashRing):
        for token in ring.tokens:
            if token.replica < limit:
                ring_map.setdefault(token.node, []).append((vnode_key(token.node, token.replica), token.hash))
    else:
        for index, owner in enumerate(ring.slots):
            if owner is not None and owner[1] < limit:
                ring_map.setdefault(owner[0], []).append((vnode_key(*owner), index))
    return ring_map


def show_ring_adj_list(ring, limit=5):
    print("\n HASH RING VIRTUAL NODES (Adjacency List Style)\n")
    ring_map = get_virtual_nodes_map(ring, limit)

    for node in sorted(ring_map):
        print(f"{node}:")
        for vnode, position in sorted(ring_map[node], key=lambda x: x[1]):
            print(f"  ↳ {vnode} -> {position}")
        print()


if __name__ == "__main__":
    from config import DISKS, WEIGHT
    show_ring_adj_list(ConsistentHashRing(range(DISKS), vnodes=WEIGHT))
