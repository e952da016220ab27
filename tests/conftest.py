# tests/conftest.py
import asyncio
import os
import sys
import tempfile

import pytest
import pytest_asyncio

# Keep test runs from writing into the working tree's logs/ directory.
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "attendance-portal-test-logs"))

# This is the crucial fix for Windows asyncio issues with pytest.
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from portal.backend.db.memory_store import MemoryStore
from portal.backend.models.db_models import Student


@pytest_asyncio.fixture
async def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def three_students():
    """A small roster with nobody having attended yet."""
    return [
        Student(id=f"student-csc-{i}", name=f"Student {i}", matric_no=f"LASU/CSC/2023/{i:03d}")
        for i in range(1, 4)
    ]
