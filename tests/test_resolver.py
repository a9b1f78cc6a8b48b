from drivestats_admin.services.push_types import NotificationTarget
from drivestats_admin.services.resolver import TargetResolver
from drivestats_admin.services.token_store import TokenStore


async def test_single_user_only_active_tokens(session, add_token):
    active = await add_token("u1", "a")
    await add_token("u1", "b", is_active=False)
    await add_token("u2", "c")

    resolved = await TargetResolver(TokenStore(session)).resolve(NotificationTarget.user("u1"))

    assert resolved.tokens == ["a"]
    assert resolved.token_owners["a"].user_id == "u1"
    assert resolved.token_owners["a"].record_id == active.id


async def test_user_set(session, add_token):
    await add_token("u1", "a")
    await add_token("u2", "b")
    await add_token("u3", "c")

    resolved = await TargetResolver(TokenStore(session)).resolve(NotificationTarget.users(["u1", "u3"]))

    assert sorted(resolved.tokens) == ["a", "c"]
    assert set(resolved.token_owners) == {"a", "c"}


async def test_broadcast_ignores_owner(session, add_token):
    await add_token("u1", "a")
    await add_token("u1", "b")
    await add_token("u2", "c", is_active=False)

    resolved = await TargetResolver(TokenStore(session)).resolve(NotificationTarget.all_users())

    assert resolved.tokens == ["a", "b"]
    assert len(resolved.tokens) == len(set(resolved.tokens))


async def test_explicit_tokens_have_no_owners(session):
    resolved = await TargetResolver(TokenStore(session)).resolve(NotificationTarget.tokens(["x", "y", "x"]))

    assert resolved.tokens == ["x", "y"]
    assert resolved.token_owners == {}


async def test_unknown_user_is_empty(session):
    resolved = await TargetResolver(TokenStore(session)).resolve(NotificationTarget.user("nobody"))

    assert resolved.is_empty
