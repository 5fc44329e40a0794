# visualize.py
import os
import matplotlib.pyplot as plt


def _ensure_dir(outpath):
    directory = os.path.dirname(outpath)
    if directory:
        os.makedirs(directory, exist_ok=True)


def plot_hit_miss_rate(hit_rate, outpath):
    _ensure_dir(outpath)
    plt.figure(figsize=(4,4))
    labels = ['Hit', 'Miss']
    sizes = [hit_rate, 1.0 - hit_rate]
    plt.pie(sizes, labels=labels, autopct='%1.1f%%')
    plt.title("Cache Hit/Miss Rate")
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath


def plot_outcome_breakdown(record, geometry, outpath):
    _ensure_dir(outpath)
    labels = ['Hits', 'Misses', 'Evictions']
    counts = [record["hits"], record["misses"], record["evictions"]]
    plt.figure(figsize=(6,4))
    bars = plt.bar(labels, counts, color=['tab:green', 'tab:red', 'tab:orange'])
    plt.bar_label(bars)
    plt.title(f"Access Outcomes (s={geometry.set_bits}, E={geometry.associativity}, b={geometry.block_bits})")
    plt.ylabel("Count")
    plt.grid(True, axis='y')
    plt.tight_layout()
    plt.savefig(outpath)
    plt.close()
    return outpath
