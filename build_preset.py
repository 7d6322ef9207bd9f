#!/usr/bin/env python3
"""
Build an OP-XY preset from a folder of samples.

Usage:
    python build_preset.py /path/to/samples -n "My Piano" --sample-rate 22050
    python build_preset.py /path/to/drums -t drum -o presets
    python build_preset.py /path/to/samples --inspect

Multisampler presets take each sample's root note from its ``smpl`` chunk or
its filename (``Piano C3.wav``, ``Pad 60.wav``). Drum presets fill the 24 drum
slots in filename order.
"""

import argparse
import logging
import os
import sys

from audio_io import SoundFileDecoder
from note_utils import midi_note_to_string
from preset_builder import MAX_SAMPLES, PresetBuilder, default_preset_name
from preset_options import BuildOptions, load_options, merge_cli_args
from preset_packager import write_preset
from preset_templates import PRESET_TYPES
from sample_processor import load_folder, process_batch

logger = logging.getLogger(__name__)


def inspect_folder(folder: str, recursive: bool = False) -> int:
    """Print the metadata found for every sample in ``folder``."""
    decoder = SoundFileDecoder()
    files = load_folder(folder, recursive)
    result = process_batch(files, decoder)
    for sample in result.processed:
        asset = sample.asset
        note = (
            f"{asset.root_note} ({midi_note_to_string(asset.root_note)})"
            if asset.root_note is not None
            else "unknown"
        )
        loop = f"{asset.loop_start:.3f}-{asset.loop_end:.3f}s"
        source = "smpl" if asset.has_loop_data else "default"
        print(
            f"{asset.filename}\t{asset.sample_rate} Hz\t{asset.channels} ch\t"
            f"{asset.bit_depth or '?'} bit\t{asset.duration:.3f}s\tnote {note}\tloop {loop} ({source})"
        )
    for name, error in result.failed:
        print(f"{name}\tERROR: {error}")
    return 0 if result.ok else 1


def build(folder: str, output_dir: str, options: BuildOptions, recursive: bool = False) -> str:
    """Process ``folder`` and write the preset archive; return its path."""
    options.validate()
    files = load_folder(folder, recursive)
    if not files:
        raise FileNotFoundError(f"No audio files found in {folder}")
    if len(files) > MAX_SAMPLES:
        logger.warning("Only the first %d of %d files are used", MAX_SAMPLES, len(files))
        files = files[:MAX_SAMPLES]

    result = process_batch(
        files,
        SoundFileDecoder(),
        sample_rate=options.sample_rate,
        channels=options.channels,
        embed_metadata=options.embed_metadata,
        max_workers=options.max_workers,
    )
    if not result.processed:
        raise ValueError("None of the samples could be processed")

    builder = PresetBuilder(options.preset_type, engine=options.engine)
    for sample in result.processed:
        builder.add_sample(sample)

    name = options.preset_name or default_preset_name(result.processed)
    return write_preset(output_dir, name, builder.build(), builder.sample_files())


def main():
    parser = argparse.ArgumentParser(description="Build an OP-XY preset from samples")
    parser.add_argument("source", help="Folder containing the samples")
    parser.add_argument("-n", "--name", dest="preset_name", default=None, help="Preset name")
    parser.add_argument("-t", "--type", dest="preset_type", choices=PRESET_TYPES, default=None,
                        help="Preset type (default: multisampler)")
    parser.add_argument("--sample-rate", type=int, default=None,
                        help="Resample to this rate (0 keeps the original)")
    parser.add_argument("--channels", type=int, choices=[0, 1, 2], default=None,
                        help="Output channels (0 keeps the original)")
    parser.add_argument("--workers", dest="max_workers", type=int, default=None,
                        help="Number of files processed in parallel")
    parser.add_argument("--embed-metadata", action="store_true",
                        help="Write root note and loop points to a smpl chunk")
    parser.add_argument("-c", "--config", default=None, help="JSON file with build options")
    parser.add_argument("-o", "--output", default=None, help="Destination folder for the preset")
    parser.add_argument("-r", "--recursive", action="store_true", help="Scan subfolders too")
    parser.add_argument("--inspect", action="store_true",
                        help="Only print the metadata of each sample")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Enable verbose logging (-vv for debug)")
    args = parser.parse_args()

    level = logging.WARNING
    if args.verbose == 1:
        level = logging.INFO
    elif args.verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s - %(message)s")

    if not os.path.isdir(args.source):
        parser.error(f"Folder not found: {args.source}")

    if args.inspect:
        sys.exit(inspect_folder(args.source, args.recursive))

    options = load_options(args.config) if args.config else BuildOptions()
    options = merge_cli_args(options, args)
    try:
        path = build(args.source, args.output or args.source, options, args.recursive)
    except (OSError, ValueError) as exc:
        logger.error("Could not build preset: %s", exc)
        sys.exit(1)
    print(path)


if __name__ == "__main__":
    main()
