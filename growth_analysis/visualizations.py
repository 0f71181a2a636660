"""
Auxiliary PNG figures of the descriptive summaries.

The reporting layer renders the bundle; these figures are quick-look
outputs written next to it. Figure generation is a non-critical step.
"""

import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np

from growth_analysis import config
from growth_analysis.logging_config import get_pipeline_logger

log = get_pipeline_logger(__name__)


def _label(col):
    return config.TERM_LABELS.get(col, col.replace("_", " ").capitalize())


def plot_correlation_heatmap(corr, output_dir):
    """Annotated heat map of the correlation matrix.

    Args:
        corr: Square DataFrame from summaries.correlation_matrix().
        output_dir: Directory for the PNG.

    Returns:
        Path of the saved figure.
    """
    fig, ax = plt.subplots(figsize=(8, 7))
    im = ax.imshow(corr.to_numpy(), cmap="RdBu_r", vmin=-1, vmax=1)

    labels = [_label(c) for c in corr.columns]
    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=45, ha="right", fontsize=8)
    ax.set_yticks(range(len(labels)))
    ax.set_yticklabels(labels, fontsize=8)

    values = corr.to_numpy()
    for i in range(values.shape[0]):
        for j in range(values.shape[1]):
            r_val = values[i, j]
            if np.isnan(r_val):
                continue
            color = "white" if abs(r_val) > 0.5 else "black"
            ax.text(j, i, f"{r_val:.2f}", ha="center", va="center",
                    fontsize=7, color=color)

    plt.colorbar(im, ax=ax, label="Pearson r")
    ax.set_title("Correlation of growth determinants")
    plt.tight_layout()

    out_path = os.path.join(output_dir, "correlation_matrix.png")
    fig.savefig(out_path, dpi=config.FIGURE_DPI)
    plt.close(fig)
    log.info("Saved correlation heatmap: %s", out_path)
    return out_path


def plot_regional_growth(regional, output_dir):
    """Horizontal bar chart of mean GDP growth by region."""
    ordered = regional.iloc[::-1]
    fig, ax = plt.subplots(figsize=(9, 5))
    colors = ["#2b8cbe" if v >= 0 else "#e34a33" for v in ordered["avg_gdp_growth"]]
    ax.barh(ordered["region"], ordered["avg_gdp_growth"], color=colors, edgecolor="black",
            linewidth=0.4)
    for y, (value, n) in enumerate(zip(ordered["avg_gdp_growth"], ordered["countries"])):
        ax.text(value, y, f" n={n}", va="center", fontsize=8)

    ax.axvline(0, color="black", linewidth=0.6)
    ax.set_xlabel("Mean GDP growth (annual %)")
    ax.set_title("GDP growth by region")
    plt.tight_layout()

    out_path = os.path.join(output_dir, "regional_growth.png")
    fig.savefig(out_path, dpi=config.FIGURE_DPI)
    plt.close(fig)
    log.info("Saved regional growth chart: %s", out_path)
    return out_path


def plot_time_trends(trends, output_dir):
    """Line chart of yearly mean growth, investment and trade openness."""
    fig, ax = plt.subplots(figsize=(10, 5))
    series = {
        "avg_gdp_growth": "GDP growth (%)",
        "avg_investment": "Investment (% GDP)",
        "avg_trade_openness": "Exports (% GDP)",
    }
    for col, label in series.items():
        ax.plot(trends["year"], trends[col], marker="o", markersize=3, label=label)

    ax.axhline(0, color="grey", linewidth=0.5)
    ax.set_xlabel("Year")
    ax.set_ylabel("Cross-country mean")
    ax.set_title("Trends in growth, investment and trade")
    ax.legend(fontsize=8)
    ax.grid(alpha=0.3)
    plt.tight_layout()

    out_path = os.path.join(output_dir, "time_trends.png")
    fig.savefig(out_path, dpi=config.FIGURE_DPI)
    plt.close(fig)
    log.info("Saved time-trend chart: %s", out_path)
    return out_path


def generate_figures(summaries, output_dir):
    """Write all figures for a summaries dict; return the paths."""
    os.makedirs(output_dir, exist_ok=True)
    return [
        plot_correlation_heatmap(summaries["correlation_matrix"], output_dir),
        plot_regional_growth(summaries["regional_summary"], output_dir),
        plot_time_trends(summaries["time_trends"], output_dir),
    ]
