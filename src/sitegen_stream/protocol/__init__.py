"""Wire protocol between the generation server and its clients."""

from sitegen_stream.protocol.wire import (
    MEDIA_TYPE,
    FrameDecoder,
    decode_record,
    encode_frame,
    frame_from_dict,
    frame_to_dict,
)

__all__ = [
    "MEDIA_TYPE",
    "FrameDecoder",
    "decode_record",
    "encode_frame",
    "frame_from_dict",
    "frame_to_dict",
]
