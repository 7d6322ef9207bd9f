"""Default OP-XY patch settings for each preset type."""

import copy
from types import MappingProxyType

PLATFORM = 'OP-XY'
PRESET_VERSION = 4

MULTISAMPLER = 'multisampler'
DRUM = 'drum'
PRESET_TYPES = (MULTISAMPLER, DRUM)


def _freeze(value):
    """Return a read-only view of nested dicts/lists."""
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


def _thaw(value):
    if isinstance(value, MappingProxyType):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [_thaw(v) for v in value]
    return copy.deepcopy(value)


MULTISAMPLE_TEMPLATE = _freeze({
    'engine': {
        'bendrange': 13653,
        'highpass': 0,
        'modulation': {
            'aftertouch': {'amount': 0, 'target': 0},
            'modwheel': {'amount': 0, 'target': 0},
            'pitchbend': {'amount': 0, 'target': 0},
            'velocity': {'amount': 0, 'target': 0},
        },
        'params': [16384] * 8,
        'playmode': 'poly',
        'portamento.amount': 0,
        'portamento.type': 32767,
        'transpose': 0,
        'tuning.root': 0,
        'tuning.scale': 0,
        'velocity.sensitivity': 10240,
        'volume': 16466,
        'width': 0,
    },
    'envelope': {
        'amp': {'attack': 0, 'decay': 0, 'release': 0, 'sustain': 0},
        'filter': {'attack': 0, 'decay': 0, 'release': 0, 'sustain': 0},
    },
    'fx': {'active': False, 'params': [0] * 8, 'type': 'svf'},
    'lfo': {'active': False, 'params': [0] * 8, 'type': 'element'},
    'octave': 0,
    'platform': PLATFORM,
    'regions': [],
    'type': MULTISAMPLER,
    'version': PRESET_VERSION,
})

DRUM_TEMPLATE = _freeze({
    'engine': {
        'bendrange': 8191,
        'highpass': 0,
        'modulation': {
            'aftertouch': {'amount': 16383, 'target': 0},
            'modwheel': {'amount': 16383, 'target': 0},
            'pitchbend': {'amount': 16383, 'target': 0},
            'velocity': {'amount': 16383, 'target': 0},
        },
        'params': [16384] * 8,
        'playmode': 'poly',
        'portamento.amount': 0,
        'portamento.type': 32767,
        'transpose': 0,
        'tuning.root': 0,
        'tuning.scale': 0,
        'velocity.sensitivity': 19660,
        'volume': 18348,
        'width': 0,
    },
    'envelope': {
        'amp': {'attack': 0, 'decay': 0, 'release': 1000, 'sustain': 32767},
        'filter': {'attack': 0, 'decay': 3276, 'release': 23757, 'sustain': 983},
    },
    'fx': {'active': False, 'params': [22014, 0, 30285, 11880, 0, 32767, 0, 0], 'type': 'ladder'},
    'lfo': {'active': False, 'params': [20309, 5679, 19114, 15807, 0, 0, 0, 12287], 'type': 'random'},
    'octave': 0,
    'platform': PLATFORM,
    'regions': [],
    'type': DRUM,
    'version': PRESET_VERSION,
})

TEMPLATES = MappingProxyType({
    MULTISAMPLER: MULTISAMPLE_TEMPLATE,
    DRUM: DRUM_TEMPLATE,
})

# Engine keys that may be overridden from the build options.
ENGINE_OVERRIDE_KEYS = {
    'highpass',
    'playmode',
    'portamento.amount',
    'transpose',
    'velocity.sensitivity',
    'volume',
    'width',
}


def get_template(preset_type: str) -> dict:
    """Return a fresh, mutable copy of the template for ``preset_type``."""
    try:
        template = TEMPLATES[preset_type]
    except KeyError:
        raise ValueError(
            f"Unknown preset type {preset_type!r}; expected one of {', '.join(PRESET_TYPES)}"
        ) from None
    return _thaw(template)
