from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.directions import direction_label
from backend.app.models import Node, NodeConnection
from backend.app.payloads import Terrain


STARTING_NODE_NAME = "Starting Area"
STARTING_NODE_SIZE = (10, 10)


@dataclass(frozen=True)
class Exit:
    direction: str
    node_id: str
    node_name: str


def first_node(session: Session, world_id: str) -> Node | None:
    return session.scalar(select(Node).where(Node.world_id == world_id).limit(1))


def create_starting_node(session: Session, world_id: str) -> Node:
    width, height = STARTING_NODE_SIZE
    node = Node(
        world_id=world_id,
        name=STARTING_NODE_NAME,
        width=width,
        height=height,
        terrain=Terrain().to_payload(),
    )
    session.add(node)
    return node


def connect_nodes(session: Session, node_a: Node, node_b: Node, dx: int, dy: int, dz: int = 0) -> NodeConnection:
    if node_a.world_id != node_b.world_id:
        raise ValueError("Cannot connect nodes from different worlds")
    if dx == dy == dz == 0:
        raise ValueError("Connection vector must not be zero")

    connection = NodeConnection(world_id=node_a.world_id, from_node=node_a, to_node=node_b, dx=dx, dy=dy, dz=dz)
    session.add(connection)
    session.commit()
    return connection


def exits_for_node(session: Session, node: Node) -> list[Exit]:
    stmt = (
        select(NodeConnection)
        .where(NodeConnection.node_a == node.id)
        .order_by(NodeConnection.dx, NodeConnection.dy, NodeConnection.dz)
    )
    return [
        Exit(direction=direction_label(*conn.vector), node_id=conn.node_b, node_name=conn.to_node.name)
        for conn in session.scalars(stmt)
    ]
