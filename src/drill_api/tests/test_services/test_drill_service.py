import pytest
from sqlalchemy import func, select

from drill_api.exceptions.base import DatabaseInsertError
from drill_api.models.category import Category
from drill_api.models.drill import Drill, drill_category_join
from drill_api.models.instruction import Instruction
from drill_api.schemas.drill import DrillUpdate


def counting_saves(monkeypatch, service) -> list:
    """Wrap service.repository.save and record every entity it is called with."""
    calls = []
    original = service.repository.save

    async def _save(entity):
        calls.append(entity)
        return await original(entity)

    monkeypatch.setattr(service.repository, "save", _save)
    return calls


def update_payload(name: str, **fields) -> DrillUpdate:
    return DrillUpdate(name=name, **fields)


async def count_rows(session, table) -> int:
    result = await session.execute(select(func.count()).select_from(table))
    return result.scalar_one()


class TestDrillServiceSave:

    async def test_without_instructions_writes_once(self, drill_service, monkeypatch):
        """
        Behavior:
            - A drill without instructions is written in a single repository call.
        """
        calls = counting_saves(monkeypatch, drill_service)

        saved = await drill_service.save(Drill(name="Roundhouse Kick"))

        assert saved.id is not None
        assert saved.update_timestamp is not None
        assert len(calls) == 1

    async def test_with_instructions_writes_twice(self, drill_service, create_drill, monkeypatch, fresh_session):
        """
        Behavior:
            - With instructions the drill is written first without them (to know its
              id), then again with every instruction carrying that id.

        Importance:
            - Instructions are keyed by (drill_id, number); they cannot be inserted
              before the drill id is known.
        """
        # Arrange
        drill = await create_drill("Roundhouse Kick")
        payload = update_payload(
            "Roundhouse Kick",
            instructions=[
                {"description": "Chamber", "steps": ["Lift knee", "Pivot"]},
                {"description": "Strike", "steps": ["Extend", "Retract"], "video_id": "abc123"},
            ],
        )
        calls = counting_saves(monkeypatch, drill_service)

        # Act
        saved = await drill_service.save(payload.to_entity(drill.id, [], []))

        # Assert: two writes, instructions numbered from 0 and owned by the drill
        assert len(calls) == 2
        assert [(i.drill_id, i.number) for i in saved.instructions] == [(drill.id, 0), (drill.id, 1)]

        reloaded = await fresh_session.get(Drill, drill.id)
        assert [i.description for i in reloaded.instructions] == ["Chamber", "Strike"]
        assert reloaded.instructions[0].steps == ["Lift knee", "Pivot"]
        assert reloaded.instructions[1].video_id == "abc123"

    async def test_new_drill_with_instructions_takes_generated_id(self, drill_service, monkeypatch, fresh_session):
        """
        Behavior:
            - A drill without an id still gets two writes; every instruction ends up
              owned by the generated id, whatever drill_id it arrived with.
        """
        # Arrange: the second instruction carries a stale owner id
        drill = Drill(
            name="Roundhouse Kick",
            instructions=[
                Instruction(description="Chamber", steps=["Lift knee"]),
                Instruction(drill_id=999, description="Strike", steps=["Extend"]),
            ],
        )
        calls = counting_saves(monkeypatch, drill_service)

        # Act
        saved = await drill_service.save(drill)

        # Assert
        assert len(calls) == 2
        assert saved.id is not None
        assert [(i.drill_id, i.number) for i in saved.instructions] == [(saved.id, 0), (saved.id, 1)]

        reloaded = await fresh_session.get(Drill, saved.id)
        assert [i.description for i in reloaded.instructions] == ["Chamber", "Strike"]
        assert await count_rows(fresh_session, Instruction.__table__) == 2

    async def test_update_replaces_instruction_list(self, drill_service, create_drill, fresh_session):
        drill = await create_drill("Roundhouse Kick")
        first = update_payload(
            "Roundhouse Kick",
            instructions=[
                {"description": "Chamber", "steps": ["Lift knee"]},
                {"description": "Strike", "steps": ["Extend"]},
                {"description": "Recover", "steps": ["Retract"]},
            ],
        )
        await drill_service.save(first.to_entity(drill.id, [], []))

        # Act: replace three instructions with one
        second = update_payload("Roundhouse Kick", instructions=[{"description": "Snap", "steps": ["Flick"]}])
        await drill_service.save(second.to_entity(drill.id, [], []))

        # Assert: only the new list remains in the database
        assert await count_rows(fresh_session, Instruction.__table__) == 1
        reloaded = await fresh_session.get(Drill, drill.id)
        assert [(i.number, i.description) for i in reloaded.instructions] == [(0, "Snap")]

    async def test_update_sets_tags_and_related_drills(
        self, drill_service, create_drill, kicks, punches, create_sub_category, fresh_session
    ):
        # Arrange
        drill = await create_drill("Roundhouse Kick")
        front = await create_drill("Front Kick")
        side = await create_drill("Side Kick")
        sub_category = await create_sub_category()
        payload = update_payload(
            "Roundhouse Kick",
            categories=[punches.id, kicks.id],
            sub_categories=[sub_category.id],
            related_drills=[side.id, front.id],
        )
        categories = await drill_service.categories.resolve_references(payload.categories)
        sub_categories = await drill_service.sub_categories.resolve_references(payload.sub_categories)

        # Act
        await drill_service.save(payload.to_entity(drill.id, categories, sub_categories))

        # Assert
        reloaded = await fresh_session.get(Drill, drill.id)
        assert [c.id for c in reloaded.categories] == sorted([kicks.id, punches.id])
        assert [s.id for s in reloaded.sub_categories] == [sub_category.id]
        assert list(reloaded.related_drills) == [side.id, front.id]

    async def test_duplicate_name_any_case(self, drill_service, create_drill):
        await create_drill("Roundhouse Kick")

        with pytest.raises(DatabaseInsertError) as exc_info:
            await drill_service.save(Drill(name="ROUNDHOUSE KICK"))

        assert exc_info.value.message == "Name already exists."

    async def test_unsaved_category_is_rejected(self, drill_service, create_drill):
        drill = await create_drill("Roundhouse Kick")
        unsaved = Category(name="Kicks", description="Leg strikes")

        with pytest.raises(DatabaseInsertError) as exc_info:
            await drill_service.save(Drill(id=drill.id, name="Roundhouse Kick", categories=[unsaved]))

        assert exc_info.value.message == "Entity does not exist in database: Category"

    async def test_unknown_related_drill(self, drill_service, create_drill):
        drill = await create_drill("Roundhouse Kick")
        entity = update_payload("Roundhouse Kick", related_drills=[9999]).to_entity(drill.id, [], [])

        with pytest.raises(DatabaseInsertError) as exc_info:
            await drill_service.save(entity)

        assert exc_info.value.message == "Related Drill does not exist."

    async def test_failed_second_write_rolls_back_everything(self, drill_service, fresh_session):
        """
        Behavior:
            - When the instructions fail validation on the second write, the drill
              inserted by the first write is rolled back too.
        """
        drill = Drill(
            name="Roundhouse Kick",
            instructions=[Instruction(number=0, description="x" * 512, steps=["Lift knee"])],
        )

        with pytest.raises(DatabaseInsertError) as exc_info:
            await drill_service.save(drill)

        assert exc_info.value.message == "Instructions[0].description size must be between 1 and 511."
        assert await count_rows(fresh_session, Drill.__table__) == 0


class TestDrillServiceReads:

    async def test_find_by_name_ignore_case(self, drill_service, create_drill):
        drill = await create_drill("Roundhouse Kick")

        assert (await drill_service.find_by_name("roundhouse KICK")).id == drill.id
        assert await drill_service.find_by_name("Axe Kick") is None

    async def test_find_all_sorted_by_name(self, drill_service, create_drill):
        await create_drill("Side Kick")
        await create_drill("Axe Kick")

        assert [d.name for d in await drill_service.find_all()] == ["Axe Kick", "Side Kick"]

    async def test_find_all_by_ids(self, drill_service, create_drill):
        side = await create_drill("Side Kick")
        axe = await create_drill("axe Kick")

        found = await drill_service.find_all_by_ids([side.id, axe.id, 9999])

        assert [d.id for d in found] == [axe.id, side.id]


class TestDrillServiceDelete:

    async def test_delete_cascades_to_children_only(self, drill_service, create_drill, kicks, fresh_session):
        """
        Behavior:
            - Deleting a drill removes its instructions, category links and
              related-drill rows; the categories themselves remain.
        """
        # Arrange
        other = await create_drill("Front Kick")
        drill = await create_drill("Roundhouse Kick")
        payload = update_payload(
            "Roundhouse Kick",
            categories=[kicks.id],
            related_drills=[other.id],
            instructions=[{"description": "Chamber", "steps": ["Lift knee"]}],
        )
        await drill_service.save(payload.to_entity(drill.id, [kicks], []))

        # Act
        await drill_service.delete_by_id(drill.id)

        # Assert
        assert await fresh_session.get(Drill, drill.id) is None
        assert await fresh_session.get(Category, kicks.id) is not None
        assert await count_rows(fresh_session, Instruction.__table__) == 0
        assert await count_rows(fresh_session, drill_category_join) == 0

    async def test_delete_unknown_id_is_silent(self, drill_service):
        await drill_service.delete_by_id(9999)


class TestDrillServiceAddTag:

    async def test_add_category_to_many(self, drill_service, create_drill, kicks, fresh_session):
        front = await create_drill("Front Kick")
        side = await create_drill("Side Kick")

        changed = await drill_service.add_category(kicks, [front.id, side.id, 9999])

        assert changed == 2
        for drill_id in (front.id, side.id):
            reloaded = await fresh_session.get(Drill, drill_id)
            assert [c.id for c in reloaded.categories] == [kicks.id]

    async def test_already_tagged_drills_are_skipped(self, drill_service, create_drill, kicks):
        front = await create_drill("Front Kick")
        await drill_service.add_category(kicks, [front.id])

        assert await drill_service.add_category(kicks, [front.id]) == 0

    async def test_add_sub_category(self, drill_service, create_drill, create_sub_category, fresh_session):
        front = await create_drill("Front Kick")
        sub_category = await create_sub_category()

        assert await drill_service.add_sub_category(sub_category, [front.id]) == 1

        reloaded = await fresh_session.get(Drill, front.id)
        assert [s.id for s in reloaded.sub_categories] == [sub_category.id]
