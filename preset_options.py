import json
import logging
from dataclasses import dataclass, field, fields

from preset_templates import MULTISAMPLER, PRESET_TYPES

logger = logging.getLogger(__name__)

SUPPORTED_SAMPLE_RATES = (0, 11025, 22050, 44100)


@dataclass
class BuildOptions:
    preset_name: str = ""
    preset_type: str = MULTISAMPLER
    sample_rate: int = 0  # 0 keeps the source rate
    channels: int = 0  # 0 keeps the source layout
    max_workers: int = 4
    embed_metadata: bool = False
    engine: dict = field(default_factory=dict)

    def validate(self) -> None:
        if self.preset_type not in PRESET_TYPES:
            raise ValueError(f"Unknown preset type: {self.preset_type}")
        if self.sample_rate < 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        if self.sample_rate not in SUPPORTED_SAMPLE_RATES:
            logger.warning("Sample rate %d Hz is not a usual OP-XY rate", self.sample_rate)
        if self.channels not in (0, 1, 2):
            raise ValueError(f"Channels must be 1 or 2, got {self.channels}")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


def load_options(path: str) -> BuildOptions:
    """Load build options from a JSON file.

    Unknown keys are ignored; a missing or invalid file gives the defaults.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Could not load options '%s': %s", path, exc)
        return BuildOptions()

    if not isinstance(data, dict):
        logger.warning("Options file '%s' does not hold an object", path)
        return BuildOptions()

    known = {f.name for f in fields(BuildOptions)}
    for key in sorted(set(data) - known):
        logger.warning("Ignoring unknown option '%s'", key)
    return BuildOptions(**{k: v for k, v in data.items() if k in known})


def merge_cli_args(options: BuildOptions, args) -> BuildOptions:
    """Apply command line values that were given on top of ``options``."""
    for name in ("preset_name", "preset_type", "sample_rate", "channels", "max_workers"):
        value = getattr(args, name, None)
        if value is not None:
            setattr(options, name, value)
    if getattr(args, "embed_metadata", False):
        options.embed_metadata = True
    return options
