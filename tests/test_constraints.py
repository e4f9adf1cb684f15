from terratile import Mesh, MeshConstraints


def _strip():
    """Three triangles in a row along X."""
    mesh = Mesh()
    for p in [(0, 0, 0), (1, 0, 0), (2, 0, 0), (0, 1, 0), (1, 1, 0), (2, 1, 0)]:
        mesh.append_vertex(p)
    mesh.append_triangle(0, 1, 4)
    mesh.append_triangle(0, 4, 3)
    mesh.append_triangle(1, 2, 5)
    return mesh


def test_incident_edges_of_constrained_vertex():
    mesh = _strip()
    constraints = MeshConstraints(vertices=[2])

    derived = constraints.add_incident_edges(mesh)

    expected = {mesh.find_edge(1, 2), mesh.find_edge(2, 5)}
    assert derived == expected
    assert constraints.edges == expected
    assert constraints.is_edge_constrained(mesh.find_edge(1, 2))
    assert not constraints.is_edge_constrained(mesh.find_edge(0, 1))


def test_incident_edge_derivation_is_idempotent():
    mesh = _strip()
    constraints = MeshConstraints(vertices=[0, 4])
    constraints.add_incident_edges(mesh)
    first = set(constraints.edges)

    constraints.add_incident_edges(mesh)

    assert constraints.edges == first


def test_invalid_vertices_are_skipped():
    mesh = _strip()
    constraints = MeshConstraints(vertices=[42])

    assert constraints.add_incident_edges(mesh) == set()
    assert constraints.is_vertex_constrained(42)


def test_copy_is_independent():
    constraints = MeshConstraints(vertices=[1], edges=[3])
    clone = constraints.copy()

    clone.add_vertices([2])
    clone.add_edges([4])

    assert constraints.vertices == {1}
    assert constraints.edges == {3}
    assert clone.vertices == {1, 2}


def test_clear():
    constraints = MeshConstraints(vertices=[1], edges=[3])

    constraints.clear()

    assert not constraints.vertices
    assert not constraints.edges
