"""Shared fixtures: tiny ONNX models, test images and an in-memory account store."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from onnx import TensorProto, helper, save
from PIL import Image

from auth import repository

INPUT_NAME = "input_image"

_REDUCE_OPS = {
    "main_output": "ReduceMean",
    "severity_output": "ReduceMax",
    "extra_output": "ReduceMin",
}


@pytest.fixture
def anyio_backend():
    return "asyncio"


def build_model(
    path: Path,
    *,
    outputs: tuple[str, ...] = ("main_output", "severity_output"),
    double_outputs: tuple[str, ...] = (),
) -> Path:
    """
    Write an ONNX graph taking [1, 224, 224, 3] and reducing over H and W.

    `main_output` is the per-channel mean, `severity_output` the per-channel
    max, so a solid colour image yields that colour for both.
    """
    inp = helper.make_tensor_value_info(INPUT_NAME, TensorProto.FLOAT, [1, 224, 224, 3])
    nodes = []
    value_infos = []
    for name in outputs:
        op = _REDUCE_OPS[name]
        if name in double_outputs:
            nodes.append(helper.make_node(op, [INPUT_NAME], [name + "_f"], axes=[1, 2], keepdims=0))
            nodes.append(helper.make_node("Cast", [name + "_f"], [name], to=TensorProto.DOUBLE))
            value_infos.append(helper.make_tensor_value_info(name, TensorProto.DOUBLE, [1, 3]))
        else:
            nodes.append(helper.make_node(op, [INPUT_NAME], [name], axes=[1, 2], keepdims=0))
            value_infos.append(helper.make_tensor_value_info(name, TensorProto.FLOAT, [1, 3]))

    graph = helper.make_graph(nodes, "tiny_multi_task", [inp], value_infos)
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", 13)])
    model.ir_version = 8
    save(model, str(path))
    return path


@pytest.fixture
def model_path(tmp_path) -> Path:
    return build_model(tmp_path / "multi_task.onnx")


def image_bytes(color=(255, 0, 0), size=(64, 48), fmt="PNG") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


class FakeAccounts:
    """In-memory stand-in for the asyncpg-backed repository functions."""

    def __init__(self):
        self.users: dict[int, dict] = {}
        self.sessions: dict[str, dict] = {}
        self._next_id = 1

    async def user_exists(self, email):
        return await self.get_user_by_email(email) is not None

    async def create_user(self, *, name, email, password_hash, auth_provider="password"):
        row = {
            "id": self._next_id,
            "name": (name or "").strip(),
            "email": repository.normalize_email(email),
            "password_hash": password_hash,
            "auth_provider": auth_provider,
            "is_active": True,
            "created_at": None,
            "updated_at": None,
        }
        self.users[row["id"]] = row
        self._next_id += 1
        return dict(row)

    async def get_user_by_email(self, email):
        wanted = repository.normalize_email(email)
        for row in self.users.values():
            if row["email"] == wanted:
                return dict(row)
        return None

    async def get_user_by_id(self, user_id):
        row = self.users.get(user_id)
        return dict(row) if row is not None else None

    async def insert_session(self, *, session_id, user_id, expires_at, user_agent=None, ip_address=None):
        row = {
            "id": session_id,
            "user_id": user_id,
            "expires_at": expires_at,
            "revoked_at": None,
            "created_at": None,
            "last_seen_at": None,
            "user_agent": user_agent,
            "ip_address": ip_address,
        }
        self.sessions[session_id] = row
        return dict(row)

    async def get_session(self, session_id):
        row = self.sessions.get(session_id)
        return dict(row) if row is not None else None

    async def touch_session(self, session_id):
        self.sessions[session_id]["last_seen_at"] = "now"

    async def revoke_session(self, session_id):
        row = self.sessions.get(session_id)
        if row is None or row["revoked_at"] is not None:
            return False
        row["revoked_at"] = "now"
        return True


@pytest.fixture
def accounts(monkeypatch) -> FakeAccounts:
    fake = FakeAccounts()
    for name in (
        "user_exists",
        "create_user",
        "get_user_by_email",
        "get_user_by_id",
        "insert_session",
        "get_session",
        "touch_session",
        "revoke_session",
    ):
        monkeypatch.setattr(repository, name, getattr(fake, name))
    return fake
