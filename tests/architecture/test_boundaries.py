from pytest_archon import archrule


def test_core_independence() -> None:
    """
    Core must not import the read side or any database driver.
    It is the foundation and must remain independent.
    """
    (
        archrule("core_is_independent")
        .match("esdoc_core*")
        .should_not_import("esdoc_projections*")
        .should_not_import("esdoc_persistence_mongo*")
        .should_not_import("motor*")
        .should_not_import("pymongo*")
        .check("esdoc_core")
    )


def test_ports_isolation() -> None:
    """
    Ports describe collaborators; they must not depend on implementations.
    """
    (
        archrule("ports_isolation")
        .match("esdoc_core.ports*")
        .should_not_import("esdoc_core.adapters*")
        .should_not_import("esdoc_core.streams*")
        .check("esdoc_core")
    )


def test_primitives_isolation() -> None:
    """
    Primitives (exceptions) sit at the bottom of the dependency graph.
    """
    (
        archrule("primitives_isolation")
        .match("esdoc_core.primitives*")
        .should_not_import("esdoc_core.streams*")
        .should_not_import("esdoc_core.adapters*")
        .check("esdoc_core")
    )


def test_projections_are_storage_agnostic() -> None:
    """
    Projections run on the document-store port, never on a concrete database.
    """
    (
        archrule("projections_storage_agnostic")
        .match("esdoc_projections*")
        .should_not_import("esdoc_persistence_mongo*")
        .should_not_import("motor*")
        .should_not_import("pymongo*")
        .check("esdoc_projections")
    )


def test_mongo_does_not_import_projections() -> None:
    """Mongo persistence implements core ports only."""
    (
        archrule("mongo_independence")
        .match("esdoc_persistence_mongo*")
        .should_not_import("esdoc_projections*")
        .check("esdoc_persistence_mongo")
    )
