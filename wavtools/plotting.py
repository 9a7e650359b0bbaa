# wavtools/plotting.py
"""
Plotting for decoded waveforms.

Every backend takes the same input: a list of (x, y) series pairs of equal
length, normally (time axis, channel samples) for each channel.

Backends:
- gnuplot:    write a tab-separated data file, then run gnuplot on it
- matplotlib: draw all pairs on one axis, show or save as PNG
- datafile:   only write the tab-separated data file

The data file has one row per sample index and 2N columns
(x1, y1, x2, y2, ...), every value in fixed notation with 8 decimals, and
starts with a '#' comment line so gnuplot skips it.
"""

from __future__ import annotations

import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
import matplotlib.pyplot as plt

from wavtools.decoder import DecodeResult
from wavtools.errors import PlotterUnavailable


# -------------------------------------------------------------------
# Defaults
# -------------------------------------------------------------------

DEFAULT_FIGURE_SIZE = (10.0, 6.0)
DEFAULT_DPI = 100
DEFAULT_GRID = True

DEFAULT_PLOT_DATA_FILE = "plot_data.txt"
DEFAULT_GNUPLOT_EXECUTABLE = "gnuplot"
PLOT_DATA_HEADER = "This data has been exported for gnuplot."
PLOT_DATA_VALUE_FORMAT = "%.8f"

BACKEND_NAMES = ("gnuplot", "matplotlib", "datafile")


@dataclass(frozen=True)
class PlotSettings:
    """
    Settings controlling how decoded channels are plotted.
    """
    backend: str = "gnuplot"
    data_file_path: str | Path = DEFAULT_PLOT_DATA_FILE
    gnuplot_executable: str = DEFAULT_GNUPLOT_EXECUTABLE
    persist: bool = True                      # keep the gnuplot window open after exit
    output_path: Optional[str | Path] = None  # matplotlib: save PNG instead of showing
    show_interactive: bool = True
    title: Optional[str] = None


@dataclass(frozen=True)
class SeriesPair:
    x_values: np.ndarray
    y_values: np.ndarray
    label: Optional[str] = None


def make_series_pairs(decode_result: DecodeResult) -> List[SeriesPair]:
    """
    Pair the shared time axis with each channel: "Channel 1", "Channel 2", ...
    """
    time_axis = decode_result.get_time_axis()
    return [
        SeriesPair(
            x_values=time_axis,
            y_values=channel_samples,
            label=f"Channel {channel_index + 1}",
        )
        for channel_index, channel_samples in enumerate(decode_result.channels)
    ]


def validate_series_pairs(pairs: Sequence[SeriesPair]) -> int:
    """
    Check every pair has x and y of one common length; return that length.
    """
    if not pairs:
        raise ValueError("At least one series pair is required for plotting.")

    series_length = len(pairs[0].x_values)
    for pair_index, pair in enumerate(pairs):
        if len(pair.x_values) != len(pair.y_values):
            raise ValueError(
                f"Series pair {pair_index} has x length {len(pair.x_values)} "
                f"but y length {len(pair.y_values)}"
            )
        if len(pair.x_values) != series_length:
            raise ValueError(
                f"Series pair {pair_index} has length {len(pair.x_values)}, "
                f"expected {series_length} like the first pair"
            )

    return series_length


# -------------------------------------------------------------------
# Data file + gnuplot command
# -------------------------------------------------------------------

def write_plot_data_file(pairs: Sequence[SeriesPair], data_file_path: str | Path) -> Path:
    validate_series_pairs(pairs)

    data_file_path = Path(data_file_path)
    if data_file_path.parent != Path("."):
        data_file_path.parent.mkdir(parents=True, exist_ok=True)

    columns: List[np.ndarray] = []
    for pair in pairs:
        columns.append(np.asarray(pair.x_values, dtype=np.float64))
        columns.append(np.asarray(pair.y_values, dtype=np.float64))

    table = np.column_stack(columns)

    np.savetxt(
        data_file_path,
        table,
        fmt=PLOT_DATA_VALUE_FORMAT,
        delimiter="\t",
        header=PLOT_DATA_HEADER,
        comments="# ",
    )
    return data_file_path


def gnuplot_quote(text: str | Path) -> str:
    # gnuplot single-quoted strings escape a quote by doubling it.
    return "'" + str(text).replace("'", "''") + "'"


def build_gnuplot_command(
    data_file_path: str | Path,
    labels: Sequence[str],
    executable: str = DEFAULT_GNUPLOT_EXECUTABLE,
    persist: bool = True,
) -> List[str]:
    """
    Argument list plotting column pair i (1-based columns 2i-1:2i) per label.
    """
    quoted_path = gnuplot_quote(data_file_path)
    plot_clauses: List[str] = []
    for pair_index, label in enumerate(labels):
        x_column = pair_index * 2 + 1
        y_column = pair_index * 2 + 2
        plot_clauses.append(
            f"{quoted_path} using {x_column}:{y_column} title {gnuplot_quote(label)} with lines"
        )

    command = [executable]
    if persist:
        command.append("-persist")
    command.extend(["-e", "plot " + ", ".join(plot_clauses)])
    return command


def _pair_labels(pairs: Sequence[SeriesPair]) -> List[str]:
    return [
        pair.label if pair.label is not None else f"Channel {pair_index + 1}"
        for pair_index, pair in enumerate(pairs)
    ]


# -------------------------------------------------------------------
# Backends
# -------------------------------------------------------------------

class PlotBackend(ABC):
    """
    Something that can display (x, y) series pairs.
    """

    @abstractmethod
    def emit_series(self, pairs: Sequence[SeriesPair]) -> None:
        raise NotImplementedError


class DataFileBackend(PlotBackend):
    def __init__(self, data_file_path: str | Path = DEFAULT_PLOT_DATA_FILE) -> None:
        self.data_file_path = Path(data_file_path)

    def emit_series(self, pairs: Sequence[SeriesPair]) -> None:
        write_plot_data_file(pairs, self.data_file_path)


class GnuplotBackend(DataFileBackend):
    """
    Writes the data file, then runs gnuplot with one line per pair.

    The executable is resolved on PATH before running; a missing executable
    raises PlotterUnavailable after the data file has been written.
    """

    def __init__(
        self,
        data_file_path: str | Path = DEFAULT_PLOT_DATA_FILE,
        executable: str = DEFAULT_GNUPLOT_EXECUTABLE,
        persist: bool = True,
    ) -> None:
        super().__init__(data_file_path)
        self.executable = executable
        self.persist = persist

    def command_for(self, pairs: Sequence[SeriesPair]) -> List[str]:
        return build_gnuplot_command(
            self.data_file_path,
            _pair_labels(pairs),
            executable=self.executable,
            persist=self.persist,
        )

    def describe_command(self, pairs: Sequence[SeriesPair]) -> str:
        """
        Shell-style rendering with the plot expression in double quotes.
        """
        command = self.command_for(pairs)
        return " ".join(command[:-1]) + f' "{command[-1]}"'

    def emit_series(self, pairs: Sequence[SeriesPair]) -> None:
        super().emit_series(pairs)

        resolved_executable = shutil.which(self.executable)
        if resolved_executable is None:
            raise PlotterUnavailable(self.executable)

        command = self.command_for(pairs)
        command[0] = resolved_executable
        subprocess.run(command, check=True)


class MatplotlibBackend(PlotBackend):
    def __init__(
        self,
        title: Optional[str] = None,
        output_path: Optional[str | Path] = None,
        show_interactive: bool = True,
    ) -> None:
        self.title = title
        self.output_path = output_path
        self.show_interactive = show_interactive

    def emit_series(self, pairs: Sequence[SeriesPair]) -> None:
        """
        Draw every pair on one axis, then save a PNG to output_path or show it.
        """
        validate_series_pairs(pairs)

        figure, axis = plt.subplots(figsize=DEFAULT_FIGURE_SIZE, dpi=DEFAULT_DPI)
        if self.title is not None:
            axis.set_title(self.title)
        axis.grid(DEFAULT_GRID)

        for pair_index, (pair, label) in enumerate(zip(pairs, _pair_labels(pairs))):
            # First channel opaque, the rest translucent.
            alpha = 1.0 if pair_index == 0 else 0.5
            axis.plot(pair.x_values, pair.y_values, label=label, alpha=alpha)

        axis.set_xlabel("Time (seconds)")
        axis.set_ylabel("Amplitude")
        axis.legend(loc="best")

        if self.output_path is not None:
            output_path = Path(self.output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            figure.savefig(output_path, bbox_inches="tight")
        elif self.show_interactive:
            plt.show()

        plt.close(figure)


def create_plot_backend(settings: PlotSettings) -> PlotBackend:
    if settings.backend == "gnuplot":
        return GnuplotBackend(
            data_file_path=settings.data_file_path,
            executable=settings.gnuplot_executable,
            persist=settings.persist,
        )

    if settings.backend == "matplotlib":
        return MatplotlibBackend(
            title=settings.title,
            output_path=settings.output_path,
            show_interactive=settings.show_interactive,
        )

    if settings.backend == "datafile":
        return DataFileBackend(data_file_path=settings.data_file_path)

    raise ValueError(f"Unknown plot backend: {settings.backend}")


def plot_decode_result(
    decode_result: DecodeResult,
    settings: Optional[PlotSettings] = None,
) -> PlotBackend:
    """
    Convenience wrapper: pair each channel with the time axis and emit it.
    Returns the backend used.
    """
    if settings is None:
        settings = PlotSettings()

    backend = create_plot_backend(settings)
    backend.emit_series(make_series_pairs(decode_result))
    return backend
