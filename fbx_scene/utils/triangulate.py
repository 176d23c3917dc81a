"""Reference polygon triangulator.

Any callable with the signature below can be passed to
``Mesh.triangulate`` / ``FbxScene.triangulate``:

    triangulator(vertices, poly_indices, target) -> int

    vertices: (N, 3) float32 array of control points
    poly_indices: control point indices of one polygon, in winding order
    target: list to append polygon-local index triples to (0 is the first
            corner of the polygon, not the first control point)

It must return the number of triangles appended, i.e. ``len(target) // 3``.

The reference implementation handles triangles and quads only; it is meant
for files that were exported with quads or less, and as an example for
custom triangulators.
"""

import logging

import numpy as np


_log = logging.getLogger("fbx_scene.triangulate")


def triangulate_polygon(vertices, poly_indices, target):
    """Triangulate a triangle or quad.

    Quads are split along the diagonal that keeps both halves facing the
    same way: with corner normals ``n1 = (p0 - p1) x (p1 - p2)`` and
    ``n3 = (p2 - p3) x (p3 - p0)``, a non-negative ``n1 . n3`` means the
    quad is convex at p1 and p3 and it is cut along p0-p2; otherwise it is
    cut along p1-p3.

    Args:
        vertices: (N, 3) array of control points
        poly_indices: control point indices of the polygon
        target: list receiving polygon-local indices

    Returns:
        number of triangles appended to ``target``
    """
    n = len(poly_indices)
    if n < 3:
        _log.warning("Degenerate polygon with %d vertices, skipped", n)
        return 0
    if n == 3:
        target.extend((0, 1, 2))
        return 1
    if n == 4:
        p0, p1, p2, p3 = (np.asarray(vertices[i], dtype=np.float64) for i in poly_indices)
        n1 = np.cross(p0 - p1, p1 - p2)
        n3 = np.cross(p2 - p3, p3 - p0)
        if np.dot(n1, n3) >= 0.0:
            target.extend((0, 1, 2, 2, 3, 0))
        else:
            target.extend((0, 1, 3, 3, 1, 2))
        return 2

    _log.warning("Polygons with %d vertices are not supported by the reference triangulator", n)
    return 0
