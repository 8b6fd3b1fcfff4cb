"""In-place JSON Patch (RFC 6902) and JSON Merge Patch (RFC 7386) for typed object graphs.

Entry points live in ``graphpatch.patch`` (``Patch``, ``apply_operations``),
``graphpatch.wire`` (decoding patch documents) and ``graphpatch.merge_patch``.
"""
