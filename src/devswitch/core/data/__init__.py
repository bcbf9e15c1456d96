"""Static data tables — ecosystem descriptors."""

from devswitch.core.data.ecosystems import ECOSYSTEMS, get_descriptor, ordered_descriptors

__all__ = ["ECOSYSTEMS", "get_descriptor", "ordered_descriptors"]
