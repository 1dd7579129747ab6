# flake8: noqa
from .build import create_archive, exclude_paths, mkbuildcontext, tar
from .decorators import check_resource, minimum_version
from .demux import Demultiplexer, demux_adaptor
from .frames import FrameDecoder, decode_frames, encode_frame
from .json_stream import JSONStreamDecoder, json_stream
from .stream_decoder import StreamDecoder
from .utils import (
    compare_version, convert_port_bindings, convert_volume_binds,
    parse_repository_tag, parse_host, kwargs_from_env, convert_filters,
    datetime_to_timestamp, create_host_config, parse_bytes, version_lt,
    version_gte, decode_json_header, split_command, parse_devices,
    format_environment, normalize_links
)
