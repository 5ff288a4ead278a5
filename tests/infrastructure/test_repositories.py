"""Tests for the SQL repositories against SQLite."""
import pytest
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import create_async_engine

from app.core.exceptions import DirectoryError
from app.domain.entities.index_entry import ResourceMetadata
from app.infrastructure.database.models import Base, directory_metadata, employee_directory
from app.infrastructure.database.repositories import (
    EmployeeDirectoryRepository,
    IndexedFaceRepository,
)
from app.infrastructure.database.session import create_session_factory, get_db_session
from app.infrastructure.database.unit_of_work import UnitOfWork

META = ResourceMetadata(size=2048, modified_at="Tue, 01 Oct 2024 10:00:00 GMT")


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'faces.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        await conn.run_sync(directory_metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


async def add_face(repo, identity, url, fingerprint=None, face_id=None):
    return await repo.create(
        identity=identity,
        remote_face_id=face_id or f"face-{identity}-{url[-5:]}",
        image_source_url=url,
        fingerprint=fingerprint,
        resource_metadata=META,
        external_id=f"employee_{identity}",
        collection_id="employees",
        confidence=99.1,
        provider_metadata={"Face": {"FaceId": "x"}},
    )


class TestIndexedFaceRepository:

    async def test_create_and_list(self, session_factory):
        async with get_db_session(session_factory) as session:
            repo = IndexedFaceRepository(session)
            created = await add_face(repo, "001", "https://d.test/1.jpg", fingerprint="00ff00ff00ff00ff")
            await session.commit()

        async with get_db_session(session_factory) as session:
            [entry] = await IndexedFaceRepository(session).list_active()

        assert entry.entry_id == created.entry_id
        assert entry.identity == "001"
        assert entry.fingerprint == "00ff00ff00ff00ff"
        assert entry.resource_metadata == META
        assert entry.provider_metadata == {"Face": {"FaceId": "x"}}
        assert entry.external_id == "employee_001"
        assert entry.active

    async def test_list_active_filters_identity_and_inactive(self, session_factory):
        async with get_db_session(session_factory) as session:
            repo = IndexedFaceRepository(session)
            first = await add_face(repo, "001", "https://d.test/1.jpg")
            await add_face(repo, "002", "https://d.test/2.jpg")
            await repo.deactivate(first.entry_id)
            await session.commit()

            assert [e.identity for e in await repo.list_active()] == ["002"]
            assert await repo.list_active(identity="001") == []

    async def test_update_fields(self, session_factory):
        async with get_db_session(session_factory) as session:
            repo = IndexedFaceRepository(session)
            entry = await add_face(repo, "001", "https://d.test/1.jpg")
            new_meta = ResourceMetadata(size=4096, modified_at="Wed, 02 Oct 2024 10:00:00 GMT")
            await repo.update(entry.entry_id, image_source_url="https://d.test/new.jpg",
                              resource_metadata=new_meta, fingerprint="abcdefabcdefabcd")
            await session.commit()

        async with get_db_session(session_factory) as session:
            [stored] = await IndexedFaceRepository(session).list_active()

        assert stored.image_source_url == "https://d.test/new.jpg"
        assert stored.resource_metadata == new_meta
        assert stored.fingerprint == "abcdefabcdefabcd"

    async def test_list_missing_fingerprints(self, session_factory):
        async with get_db_session(session_factory) as session:
            repo = IndexedFaceRepository(session)
            await add_face(repo, "001", "https://d.test/1.jpg", fingerprint="00ff00ff00ff00ff")
            missing = await add_face(repo, "002", "https://d.test/2.jpg")
            gone = await add_face(repo, "003", "https://d.test/3.jpg")
            await repo.deactivate(gone.entry_id)
            await session.commit()

            assert [e.entry_id for e in await repo.list_missing_fingerprints()] == [missing.entry_id]

    async def test_collapse_duplicates_keeps_newest(self, session_factory):
        async with get_db_session(session_factory) as session:
            repo = IndexedFaceRepository(session)
            old = await add_face(repo, "001", "https://d.test/a.jpg")
            older_dup = await add_face(repo, "001", "https://d.test/b.jpg")
            newest = await add_face(repo, "001", "https://d.test/c.jpg")
            single = await add_face(repo, "002", "https://d.test/d.jpg")
            await session.commit()

            collapsed = await repo.collapse_duplicates()
            await session.commit()

        assert [e.entry_id for e in collapsed] == [old.entry_id, older_dup.entry_id]
        assert all(not e.active for e in collapsed)

        async with get_db_session(session_factory) as session:
            active = await IndexedFaceRepository(session).list_active()
        assert [e.entry_id for e in active] == [newest.entry_id, single.entry_id]

    async def test_collapse_without_duplicates_is_noop(self, session_factory):
        async with get_db_session(session_factory) as session:
            repo = IndexedFaceRepository(session)
            await add_face(repo, "001", "https://d.test/a.jpg")
            assert await repo.collapse_duplicates() == []


class TestUnitOfWork:

    async def test_transaction_commits(self, session_factory):
        async with get_db_session(session_factory) as session:
            uow = UnitOfWork(session)
            async with uow.transaction():
                await add_face(uow.faces, "001", "https://d.test/1.jpg")

        async with get_db_session(session_factory) as session:
            assert len(await IndexedFaceRepository(session).list_active()) == 1

    async def test_transaction_rolls_back_on_error(self, session_factory):
        async with get_db_session(session_factory) as session:
            uow = UnitOfWork(session)
            with pytest.raises(RuntimeError):
                async with uow.transaction():
                    await add_face(uow.faces, "001", "https://d.test/1.jpg")
                    raise RuntimeError("registration failed")

        async with get_db_session(session_factory) as session:
            assert await IndexedFaceRepository(session).list_active() == []


class TestEmployeeDirectoryRepository:

    async def test_lists_active_employees_with_photo(self, session_factory):
        rows = [
            {"identity_number": "003", "photo_path": "/photos/003.jpg", "employment_status": "ACTIVE"},
            {"identity_number": "001", "photo_path": "/photos/001.jpg", "employment_status": "ACTIVE"},
            {"identity_number": "002", "photo_path": "/photos/002.jpg", "employment_status": "RETIRED"},
            {"identity_number": "004", "photo_path": None, "employment_status": "ACTIVE"},
            {"identity_number": "005", "photo_path": "", "employment_status": "ACTIVE"},
        ]
        async with get_db_session(session_factory) as session:
            await session.execute(insert(employee_directory), rows)
            await session.commit()

            records = await EmployeeDirectoryRepository(session, "ACTIVE").list_active_records()

        assert [(r.identity, r.image_reference) for r in records] == [
            ("001", "/photos/001.jpg"),
            ("003", "/photos/003.jpg"),
        ]
        assert all(r.status == "ACTIVE" for r in records)

    async def test_repeated_identity_yields_one_record(self, session_factory):
        rows = [
            {"identity_number": "001", "photo_path": "/photos/a.jpg", "employment_status": "ACTIVE"},
            {"identity_number": "001", "photo_path": "/photos/b.jpg", "employment_status": "ACTIVE"},
        ]
        async with get_db_session(session_factory) as session:
            await session.execute(insert(employee_directory), rows)
            await session.commit()

            records = await EmployeeDirectoryRepository(session, "ACTIVE").list_active_records()

        assert [(r.identity, r.image_reference) for r in records] == [("001", "/photos/b.jpg")]

    async def test_query_failure_is_wrapped(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        factory = create_session_factory(engine)
        try:
            async with get_db_session(factory) as session:
                with pytest.raises(DirectoryError):
                    await EmployeeDirectoryRepository(session, "ACTIVE").list_active_records()
        finally:
            await engine.dispose()
