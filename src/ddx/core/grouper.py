"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Implements extension-based bucketing of one document's images.
Ordering inside a bucket is by filename so matching is reproducible.
"""

from typing import List, Dict, Any, Callable
from collections import defaultdict
from ddx.core.interfaces import ImageGrouper
from ddx.core.models import ImageRef, split_extension


class ImageGrouperImpl(ImageGrouper):
    """
    A concrete implementation of ImageGrouper.
    Pure: reads only the given mapping, never touches the files.
    """

    def group_by_extension(self, images: Dict[str, str]) -> Dict[str, List[ImageRef]]:
        """Groups images by lowercase extension ("" for names without one)."""
        refs = [ImageRef(name=name, path=path) for name, path in images.items()]
        return self._group_by(refs, lambda ref: split_extension(ref.name))

    @staticmethod
    def union_keys(*groupings: Dict[str, List[ImageRef]]) -> List[str]:
        """Sorted union of the extension keys of several groupings."""
        keys = set()
        for grouping in groupings:
            keys.update(grouping.keys())
        return sorted(keys)

    @staticmethod
    def _group_by(refs: List[ImageRef], key_func: Callable[[ImageRef], Any]) -> Dict[Any, List[ImageRef]]:
        """
        Helper method to group images by any computed key.
        Args:
            refs: Images to group
            key_func: Function that computes a hashable key from an ImageRef
        Returns:
            Dict[key, List[ImageRef]] with every list sorted by name
        """
        groups = defaultdict(list)
        for ref in refs:
            groups[key_func(ref)].append(ref)

        return {key: sorted(group, key=lambda r: r.name) for key, group in groups.items()}
