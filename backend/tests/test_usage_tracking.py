# ruff: noqa: S101
from __future__ import annotations

import logging
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from usage_limits.core.time import utcnow
from usage_limits.models.agent_teams import AgentTeam
from usage_limits.models.agents import Agent
from usage_limits.models.interactions import Interaction
from usage_limits.models.limits import Limit
from usage_limits.models.organizations import Organization
from usage_limits.models.teams import Team
from usage_limits.services.usage_tracking import UsageTarget, UsageTracker


async def _make_engine(tmp_path: Path) -> AsyncEngine:
    # File-backed so concurrent increments each get a real connection.
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'usage.db'}")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


def _token_limit(entity_type: str, entity_id: UUID | str, *, tokens_in: int = 0, tokens_out: int = 0) -> Limit:
    return Limit(
        entity_type=entity_type,
        entity_id=str(entity_id),
        limit_type="token_cost",
        limit_value=100_000,
        model="gpt-4o",
        current_usage_tokens_in=tokens_in,
        current_usage_tokens_out=tokens_out,
    )


def _interaction(agent_id: UUID, *, input_tokens: int | None, output_tokens: int | None) -> Interaction:
    return Interaction(
        id=uuid4(),
        agent_id=agent_id,
        model="gpt-4o",
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        created_at=utcnow(),
    )


async def _counters(session_maker: async_sessionmaker[AsyncSession], limit_id: UUID) -> tuple[int, int]:
    async with session_maker() as session:
        row = await session.get(Limit, limit_id)
    assert row is not None
    return row.current_usage_tokens_in, row.current_usage_tokens_out


class _SessionMakerSpy:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> AsyncSession:
        self.calls += 1
        msg = "session should not be opened"
        raise AssertionError(msg)


class _RaisingMembership:
    async def team_ids_for_agent(self, agent_id: UUID | str) -> list[str]:
        del agent_id
        msg = "membership backend unavailable"
        raise RuntimeError(msg)

    async def organization_id_for_team(self, team_id: UUID | str) -> str | None:
        del team_id
        return None


@pytest.mark.asyncio
async def test_zero_token_interaction_issues_no_writes() -> None:
    spy = _SessionMakerSpy()
    tracker = UsageTracker(spy)  # type: ignore[arg-type]

    result = await tracker.record_interaction_usage(
        _interaction(uuid4(), input_tokens=None, output_tokens=0),
    )

    assert spy.calls == 0
    assert result.targets == ()


@pytest.mark.asyncio
async def test_agent_without_teams_falls_back_to_existing_organization_limit(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    engine = await _make_engine(tmp_path)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    agent = Agent(id=uuid4(), name="friday")
    org_limit = _token_limit("organization", uuid4(), tokens_in=100, tokens_out=50)
    agent_limit = _token_limit("agent", agent.id)
    try:
        async with session_maker() as session:
            session.add_all([agent, org_limit, agent_limit])
            await session.commit()

        tracker = UsageTracker(session_maker)
        with caplog.at_level(logging.WARNING):
            result = await tracker.record_interaction_usage(
                _interaction(agent.id, input_tokens=10, output_tokens=5),
            )

        assert await _counters(session_maker, org_limit.id) == (110, 55)
        assert await _counters(session_maker, agent_limit.id) == (10, 5)
        assert result.failed == ()
        assert [target.entity_type for target in result.targets] == ["organization", "agent"]
        assert any(record.getMessage() == "usage.tracking.agent_without_teams" for record in caplog.records)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_agent_without_teams_and_no_organization_limit_drops_org_share(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    engine = await _make_engine(tmp_path)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    agent = Agent(id=uuid4(), name="friday")
    agent_limit = _token_limit("agent", agent.id)
    try:
        async with session_maker() as session:
            session.add_all([agent, agent_limit])
            await session.commit()

        with caplog.at_level(logging.WARNING):
            result = await UsageTracker(session_maker).record_interaction_usage(
                _interaction(agent.id, input_tokens=7, output_tokens=0),
            )

        assert result.targets == (UsageTarget(entity_type="agent", entity_id=str(agent.id)),)
        assert await _counters(session_maker, agent_limit.id) == (7, 0)
        dropped = [r for r in caplog.records if r.getMessage() == "usage.tracking.organization_usage_dropped"]
        assert dropped and dropped[0].levelno == logging.ERROR
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_two_teams_in_one_organization_charge_the_organization_once(tmp_path: Path) -> None:
    engine = await _make_engine(tmp_path)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    org = Organization(id=uuid4(), name="KR8TIV")
    team_one = Team(id=uuid4(), organization_id=org.id, name="research")
    team_two = Team(id=uuid4(), organization_id=org.id, name="ops")
    agent = Agent(id=uuid4(), name="friday")
    org_limit = _token_limit("organization", org.id)
    team_one_limit = _token_limit("team", team_one.id)
    team_two_limit = _token_limit("team", team_two.id)
    agent_limit = _token_limit("agent", agent.id)
    try:
        async with session_maker() as session:
            session.add_all([org, team_one, team_two, agent])
            session.add_all(
                [
                    AgentTeam(agent_id=agent.id, team_id=team_one.id),
                    AgentTeam(agent_id=agent.id, team_id=team_two.id),
                ]
            )
            session.add_all([org_limit, team_one_limit, team_two_limit, agent_limit])
            await session.commit()

        result = await UsageTracker(session_maker).record_interaction_usage(
            _interaction(agent.id, input_tokens=10, output_tokens=5),
        )

        assert result.failed == ()
        assert await _counters(session_maker, org_limit.id) == (10, 5)
        assert await _counters(session_maker, team_one_limit.id) == (10, 5)
        assert await _counters(session_maker, team_two_limit.id) == (10, 5)
        assert await _counters(session_maker, agent_limit.id) == (10, 5)
        org_targets = [target for target in result.targets if target.entity_type == "organization"]
        assert org_targets == [UsageTarget(entity_type="organization", entity_id=str(org.id))]
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_teams_in_different_organizations_only_charge_the_first_team_organization(
    tmp_path: Path,
) -> None:
    engine = await _make_engine(tmp_path)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    first_org = Organization(id=uuid4(), name="first")
    second_org = Organization(id=uuid4(), name="second")
    first_team = Team(id=uuid4(), organization_id=first_org.id, name="alpha")
    second_team = Team(id=uuid4(), organization_id=second_org.id, name="beta")
    agent = Agent(id=uuid4(), name="friday")
    first_org_limit = _token_limit("organization", first_org.id)
    second_org_limit = _token_limit("organization", second_org.id)

    class _OrderedMembership:
        async def team_ids_for_agent(self, agent_id: UUID | str) -> list[str]:
            del agent_id
            return [str(first_team.id), str(second_team.id)]

        async def organization_id_for_team(self, team_id: UUID | str) -> str | None:
            return str(first_org.id) if str(team_id) == str(first_team.id) else str(second_org.id)

    try:
        async with session_maker() as session:
            session.add_all([first_org, second_org, first_team, second_team, agent])
            session.add_all([first_org_limit, second_org_limit])
            await session.commit()

        tracker = UsageTracker(session_maker, membership_factory=lambda _: _OrderedMembership())
        await tracker.record_interaction_usage(_interaction(agent.id, input_tokens=4, output_tokens=1))

        assert await _counters(session_maker, first_org_limit.id) == (4, 1)
        assert await _counters(session_maker, second_org_limit.id) == (0, 0)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_membership_failure_is_swallowed_and_agent_is_still_metered(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    engine = await _make_engine(tmp_path)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    agent = Agent(id=uuid4(), name="friday")
    agent_limit = _token_limit("agent", agent.id)
    try:
        async with session_maker() as session:
            session.add_all([agent, agent_limit])
            await session.commit()

        logger = logging.getLogger("tests.usage_tracking")
        tracker = UsageTracker(
            session_maker,
            membership_factory=lambda _: _RaisingMembership(),
            logger=logger,
        )
        with caplog.at_level(logging.ERROR, logger="tests.usage_tracking"):
            await tracker.record_interaction_usage(_interaction(agent.id, input_tokens=3, output_tokens=2))

        assert await _counters(session_maker, agent_limit.id) == (3, 2)
        failures = [r for r in caplog.records if r.name == "tests.usage_tracking"]
        assert [r.getMessage() for r in failures] == ["usage.tracking.failed"]
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_increment_failures_are_logged_and_never_raised(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    engine = await _make_engine(tmp_path)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    agent = Agent(id=uuid4(), name="friday")
    try:
        async with session_maker() as session:
            session.add(agent)
            await session.commit()
        # Drop the table so every increment write fails.
        async with engine.connect() as conn, conn.begin():
            await conn.run_sync(lambda sync_conn: Limit.__table__.drop(sync_conn))

        class _SingleTeam:
            async def team_ids_for_agent(self, agent_id: UUID | str) -> list[str]:
                del agent_id
                return ["team-x"]

            async def organization_id_for_team(self, team_id: UUID | str) -> str | None:
                del team_id
                return "org-x"

        tracker = UsageTracker(session_maker, membership_factory=lambda _: _SingleTeam())
        with caplog.at_level(logging.ERROR):
            result = await tracker.record_interaction_usage(
                _interaction(agent.id, input_tokens=10, output_tokens=5),
            )

        assert len(result.targets) == 3
        assert set(result.failed) == set(result.targets)
        failures = [r for r in caplog.records if r.getMessage() == "usage.tracking.increment_failed"]
        assert len(failures) == 3
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_record_mcp_server_call_counts_one_call(tmp_path: Path) -> None:
    engine = await _make_engine(tmp_path)
    session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    mcp_limit = Limit(
        entity_type="team",
        entity_id="team-1",
        limit_type="mcp_server_calls",
        limit_value=5,
        mcp_server_name="github",
    )
    try:
        async with session_maker() as session:
            session.add(mcp_limit)
            await session.commit()

        tracker = UsageTracker(session_maker)
        assert await tracker.record_mcp_server_call("team", "team-1", "github") is True
        assert await tracker.record_mcp_server_call("team", "team-1", "linear") is True

        assert await _counters(session_maker, mcp_limit.id) == (1, 0)
    finally:
        await engine.dispose()
