# wavtools/cli.py
"""
Command Line Interface (CLI) for decoding and plotting a WAV file.

Usage examples:
  python -m wavtools.cli --help
  python -m wavtools.cli recording.wav
  python -m wavtools.cli recording.wav --backend matplotlib --output plots/recording.png --no_show
  python -m wavtools.cli recording.wav --backend datafile --data-file out/plot_data.txt

If no input is given, or the file cannot be opened, the path is asked for
again on standard input until a file opens.

Exit codes:
  0  decoded and plotted
  1  no file could be opened (end of input while prompting)
  2  the file is not a decodable WAVE file
  3  plotting failed (e.g. gnuplot not on PATH)
"""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import Callable, List, Optional

from wavtools.chunks import LoadedChunks, load_chunks, summarise_chunks_text
from wavtools.decoder import (
    decode_chunks,
    format_waveform_head,
    summarise_decode_result_text,
)
from wavtools.errors import IoOpenError, PlotterUnavailable, WavError
from wavtools.plotting import (
    BACKEND_NAMES,
    DEFAULT_GNUPLOT_EXECUTABLE,
    DEFAULT_PLOT_DATA_FILE,
    GnuplotBackend,
    PlotSettings,
    create_plot_backend,
    make_series_pairs,
)


EXIT_OK = 0
EXIT_NO_INPUT = 1
EXIT_DECODE_ERROR = 2
EXIT_PLOT_ERROR = 3

DEFAULT_HEAD_LENGTH = 10
INPUT_PROMPT = "Enter a WAV file path: "


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="wavtools",
        description="Decode an uncompressed WAV file and plot each channel against time.",
    )

    parser.add_argument(
        "input_wav_file_path",
        nargs="?",
        default=None,
        help="Path to input WAV file. Asked for on standard input if missing or unopenable.",
    )

    parser.add_argument(
        "extra_arguments",
        nargs="*",
        help=argparse.SUPPRESS,
    )

    parser.add_argument(
        "--backend",
        choices=BACKEND_NAMES,
        default="gnuplot",
        help="How to plot the decoded channels (default: gnuplot).",
    )

    parser.add_argument(
        "--data-file",
        dest="data_file_path",
        type=str,
        default=DEFAULT_PLOT_DATA_FILE,
        help=f"Tab-separated plot data file for gnuplot/datafile backends (default: {DEFAULT_PLOT_DATA_FILE}).",
    )

    parser.add_argument(
        "--gnuplot",
        dest="gnuplot_executable",
        type=str,
        default=DEFAULT_GNUPLOT_EXECUTABLE,
        help=f"gnuplot executable name or path (default: {DEFAULT_GNUPLOT_EXECUTABLE}).",
    )

    parser.add_argument(
        "--output",
        dest="output_path",
        type=str,
        default=None,
        help="matplotlib backend only: save a PNG here instead of showing the plot.",
    )

    parser.add_argument(
        "--no_show",
        action="store_true",
        help="If set, do not display plots interactively (useful when saving files).",
    )

    parser.add_argument(
        "--head",
        dest="head_length",
        type=int,
        default=DEFAULT_HEAD_LENGTH,
        help=f"Number of leading samples to print per channel (default: {DEFAULT_HEAD_LENGTH}).",
    )

    parser.add_argument(
        "--skip-pad",
        dest="skip_pad_bytes",
        action="store_true",
        help="Skip the RIFF word-alignment byte after odd-sized chunks (off by default).",
    )

    return parser.parse_args(argv)


def open_with_reprompt(
    wav_file_path: Optional[str],
    skip_pad_bytes: bool = False,
    input_function: Callable[[str], str] = input,
) -> Optional[LoadedChunks]:
    """
    Load chunks from wav_file_path, asking for another path until one opens.

    Returns None if standard input ends before a file could be opened.
    Only open failures are retried; a file that opens but is truncated
    raises TruncatedChunk.
    """
    while True:
        if not wav_file_path:
            try:
                wav_file_path = input_function(INPUT_PROMPT).strip()
            except EOFError:
                return None
            if not wav_file_path:
                continue

        try:
            return load_chunks(wav_file_path, skip_pad_bytes=skip_pad_bytes)
        except IoOpenError as open_error:
            print(str(open_error), file=sys.stderr)
            wav_file_path = None


def main(
    argv: Optional[List[str]] = None,
    input_function: Callable[[str], str] = input,
) -> int:
    parsed_arguments = parse_arguments(argv)

    if parsed_arguments.extra_arguments:
        print(
            f"Ignoring extra arguments: {' '.join(parsed_arguments.extra_arguments)}",
            file=sys.stderr,
        )

    try:
        loaded_chunks = open_with_reprompt(
            parsed_arguments.input_wav_file_path,
            skip_pad_bytes=bool(parsed_arguments.skip_pad_bytes),
            input_function=input_function,
        )
    except WavError as load_error:
        print(f"Error: {load_error}", file=sys.stderr)
        return EXIT_DECODE_ERROR

    if loaded_chunks is None:
        print("No input file was opened.", file=sys.stderr)
        return EXIT_NO_INPUT

    print(summarise_chunks_text(loaded_chunks))

    try:
        decode_result = decode_chunks(loaded_chunks.chunks, include_time_axis=True)
    except WavError as decode_error:
        print(f"Error: {decode_error}", file=sys.stderr)
        return EXIT_DECODE_ERROR

    print(summarise_decode_result_text(decode_result))

    for channel_index, channel_samples in enumerate(decode_result.channels):
        print(f"Channel {channel_index}: {format_waveform_head(channel_samples, parsed_arguments.head_length)}")

    output_path: Optional[str] = parsed_arguments.output_path
    if output_path is not None:
        output_path = str(Path(output_path))

    plot_settings = PlotSettings(
        backend=str(parsed_arguments.backend),
        data_file_path=str(parsed_arguments.data_file_path),
        gnuplot_executable=str(parsed_arguments.gnuplot_executable),
        output_path=output_path,
        show_interactive=not bool(parsed_arguments.no_show),
        title=loaded_chunks.file_path.name,
    )

    backend = create_plot_backend(plot_settings)
    series_pairs = make_series_pairs(decode_result)

    if isinstance(backend, GnuplotBackend):
        print("Plotting instruction:")
        print(backend.describe_command(series_pairs))

    try:
        backend.emit_series(series_pairs)
    except PlotterUnavailable as plot_error:
        print(f"Error: {plot_error}", file=sys.stderr)
        print(f"Plot data was written to {backend.data_file_path}", file=sys.stderr)
        return EXIT_PLOT_ERROR
    except (subprocess.CalledProcessError, OSError) as plot_error:
        print(f"Error: plotting failed: {plot_error}", file=sys.stderr)
        return EXIT_PLOT_ERROR

    return EXIT_OK


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
