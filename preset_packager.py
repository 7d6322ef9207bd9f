import io
import json
import logging
import os
import zipfile
from typing import Iterable, List, Tuple

from note_utils import sanitize_name
from pcm_encoder import EncodingError, parse_wav_header

logger = logging.getLogger(__name__)

PATCH_FILE = "patch.json"


def preset_folder_name(name: str) -> str:
    """Return the ``<name>.preset`` folder name used on the device."""
    clean = sanitize_name(name).strip() or "preset"
    return f"{clean}.preset"


def validate_preset(patch: dict, sample_files: List[Tuple[str, bytes]]) -> Iterable[str]:
    """Yield problems found with a descriptor and its samples."""
    if patch.get("type") not in ("multisampler", "drum"):
        yield f"Unknown preset type: {patch.get('type')!r}"

    regions = patch.get("regions") or []
    if not regions:
        yield "Preset has no regions"

    names = {name for name, _ in sample_files}
    for region in regions:
        if region.get("sample") not in names:
            yield f"Missing sample file for region: {region.get('sample')!r}"
        lo, hi = region.get("lokey", 0), region.get("hikey", 127)
        if not 0 <= lo <= hi <= 127:
            yield f"Bad key range {lo}-{hi} for {region.get('sample')!r}"

    for name, data in sample_files:
        try:
            parse_wav_header(data)
        except EncodingError as exc:
            yield f"{name}: {exc}"


def package_preset(name: str, patch: dict, sample_files: List[Tuple[str, bytes]]) -> bytes:
    """Return a zip archive holding ``<name>.preset/patch.json`` and the samples."""
    issues = list(validate_preset(patch, sample_files))
    if issues:
        raise ValueError("; ".join(issues))

    folder = preset_folder_name(name)
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zipf:
        zipf.writestr(f"{folder}/{PATCH_FILE}", json.dumps(patch, indent=2))
        for file_name, data in sample_files:
            zipf.writestr(f"{folder}/{file_name}", data)
    logger.info("Packaged %s with %d sample(s)", folder, len(sample_files))
    return buf.getvalue()


def write_preset(
    output_dir: str, name: str, patch: dict, sample_files: List[Tuple[str, bytes]]
) -> str:
    """Write the preset archive to ``output_dir`` and return its path."""
    os.makedirs(output_dir, exist_ok=True)
    output_file = os.path.join(output_dir, f"{preset_folder_name(name)}.zip")
    data = package_preset(name, patch, sample_files)
    with open(output_file, "wb") as f:
        f.write(data)
    logger.info("Wrote '%s'", output_file)
    return output_file
