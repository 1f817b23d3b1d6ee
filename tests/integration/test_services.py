"""Domain services on top of the record store."""

import pytest
from pydantic import ValidationError

from string_manager.core.exceptions import AccessDeniedError, InvalidInputError
from string_manager.domains.access.services import AccessService
from string_manager.domains.apps.schemas import AppCreate
from string_manager.domains.apps.services import AppService
from string_manager.domains.identity.services import IdentityService
from string_manager.domains.projects.entities import Role
from string_manager.domains.projects.schemas import MemberAdd, ProjectCreate, ProjectUpdate
from string_manager.domains.projects.services import ProjectService
from string_manager.domains.strings.entities import StringStatus
from string_manager.domains.strings.schemas import StringCreate, StringUpdate
from string_manager.domains.strings.services import StringService


@pytest.mark.asyncio
class TestIdentityService:
    async def test_ensure_user_is_idempotent(self, memory_store):
        service = IdentityService(memory_store)

        first = await service.ensure_user("ana@strings.io", "Ana")
        second = await service.ensure_user("ana@strings.io", "Someone Else")

        assert first.id == second.id
        assert second.name == "Ana"

    async def test_bootstrap_only_on_empty_store(self, memory_store):
        service = IdentityService(memory_store)

        assert await service.bootstrap_sample_data("admin@strings.io", "Admin")
        assert not await service.bootstrap_sample_data("admin@strings.io", "Admin")

        user = await memory_store.get_user_by_email("admin@strings.io")
        projects = await memory_store.list_projects_for_user(user.id)
        assert len(projects) == 1
        apps = await memory_store.list_apps(projects[0].id)
        strings = await memory_store.list_all_strings(apps[0].id)
        assert [item.key for item in strings] == ["1", "2"]
        assert all(item.status == StringStatus.NEW for item in strings)


@pytest.mark.asyncio
class TestProjectService:
    async def test_create_and_update(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        service = ProjectService(memory_store)

        project = await service.create_project(ProjectCreate(name="  Web  "), owner.id)
        updated = await service.update_project(project.id, ProjectUpdate(description="Web apps"))

        assert project.name == "Web"
        assert updated.name == "Web"
        assert updated.description == "Web apps"

    async def test_delete_refused_while_apps_exist(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        service = ProjectService(memory_store)
        project = await service.create_project(ProjectCreate(name="Web"), owner.id)
        app = await memory_store.create_app(project.id, "Site")

        with pytest.raises(InvalidInputError):
            await service.delete_project(project.id)

        await memory_store.delete_app(app.id)
        assert await service.delete_project(project.id)

    async def test_add_member_creates_user_and_updates_role(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        service = ProjectService(memory_store)
        project = await service.create_project(ProjectCreate(name="Web"), owner.id)

        member = await service.add_member(project.id, MemberAdd(email="dev@strings.io"), owner.id)
        again = await service.add_member(project.id, MemberAdd(email="dev@strings.io", role=Role.ADMIN), owner.id)

        assert member.role == Role.MEMBER
        assert again.id == member.id
        assert again.role == Role.ADMIN
        assert (await memory_store.get_user(member.user_id)).name == "dev"

    async def test_only_owner_grants_owner(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        admin = await memory_store.create_user("admin@strings.io", "Admin")
        service = ProjectService(memory_store)
        project = await service.create_project(ProjectCreate(name="Web"), owner.id)
        await memory_store.upsert_member(project.id, admin.id, Role.ADMIN)

        with pytest.raises(AccessDeniedError):
            await service.add_member(project.id, MemberAdd(email="x@strings.io", role=Role.OWNER), admin.id)

    async def test_last_owner_cannot_leave(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        service = ProjectService(memory_store)
        project = await service.create_project(ProjectCreate(name="Web"), owner.id)

        with pytest.raises(InvalidInputError):
            await service.remove_member(project.id, owner.id)

        second = await service.add_member(project.id, MemberAdd(email="co@strings.io", role=Role.OWNER), owner.id)
        assert await service.remove_member(project.id, owner.id)
        assert (await memory_store.get_member(project.id, second.user_id)).role == Role.OWNER


@pytest.mark.asyncio
class TestStringService:
    async def test_new_string_stays_new_after_edit(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        project = await memory_store.create_project("Web", owner.id)
        app = await AppService(memory_store).create_app(project.id, AppCreate(name="Site"))
        service = StringService(memory_store)

        item = await service.create_string(app.id, StringCreate(key=" hello ", value="Hello"), owner.id)
        edited = await service.update_string(app.id, item.id, StringUpdate(value="Hi"), owner.id)

        assert item.key == "hello"
        assert item.status == StringStatus.NEW
        assert edited.status == StringStatus.NEW
        assert edited.value == "Hi"
        assert edited.modified_by == owner.id

    async def test_null_additional_columns_clears_them(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        project = await memory_store.create_project("Web", owner.id)
        app = await memory_store.create_app(project.id, "Site")
        service = StringService(memory_store)
        item = await service.create_string(
            app.id, StringCreate(key="title", value="Welcome", additional_columns={"Korean": "환영"}), owner.id
        )

        edited = await service.update_string(
            app.id, item.id, StringUpdate.model_validate({"additional_columns": None}), owner.id
        )

        assert edited.additional_columns is None
        assert edited.value == "Welcome"
        assert edited.status == StringStatus.NEW

    async def test_null_key_or_value_is_rejected(self):
        with pytest.raises(ValidationError):
            StringUpdate.model_validate({"key": None})
        with pytest.raises(ValidationError):
            StringUpdate.model_validate({"value": None})

    async def test_search_matches_key_value_and_columns(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        project = await memory_store.create_project("Web", owner.id)
        app = await memory_store.create_app(project.id, "Site")
        service = StringService(memory_store)
        await service.create_string(app.id, StringCreate(key="title", value="Welcome"))
        await service.create_string(app.id, StringCreate(key="body", value="Text", additional_columns={"Korean": "환영"}))
        await service.create_string(app.id, StringCreate(key="footer", value="Bye"))

        assert (await service.list_strings(app.id, search="WELCOME"))[1] == 1
        assert [i.key for i in (await service.list_strings(app.id, search="환영"))[0]] == ["body"]
        assert (await service.list_strings(app.id, search="  "))[1] == 3

    async def test_string_of_other_app_is_not_found(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        project = await memory_store.create_project("Web", owner.id)
        first = await memory_store.create_app(project.id, "Site")
        second = await memory_store.create_app(project.id, "Admin")
        service = StringService(memory_store)
        item = await service.create_string(first.id, StringCreate(key="k", value="v"))

        assert await service.update_string(second.id, item.id, StringUpdate(value="x")) is None
        assert not await service.delete_string(second.id, item.id)


@pytest.mark.asyncio
class TestAccessService:
    async def test_require_raises_access_denied(self, memory_store):
        owner = await memory_store.create_user("owner@strings.io", "Owner")
        viewer = await memory_store.create_user("viewer@strings.io", "Viewer")
        project = await memory_store.create_project("Web", owner.id)
        app = await memory_store.create_app(project.id, "Site")
        await memory_store.upsert_member(project.id, viewer.id, Role.VIEWER)
        access = AccessService(memory_store)

        await access.require_app(app.id, viewer.id)
        with pytest.raises(AccessDeniedError):
            await access.require_app(app.id, viewer.id, Role.MEMBER)
        with pytest.raises(PermissionError):
            await access.require_project(project.id, viewer.id, Role.ADMIN)
