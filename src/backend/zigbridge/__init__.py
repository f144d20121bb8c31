"""zigbridge: Zigbee device feedback tracking and callback relay."""

__version__ = "0.1.0"
