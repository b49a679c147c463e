"""Protocol layer: virtual sensor frame layout and checksum."""

from .framing import FrameBuilder, decode_frame, encode_sensor_value, verify_frame
