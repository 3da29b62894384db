from finflow.services.binding_service import (
    bind_chat,
    get_binding,
    issue_link_token,
    redeem_link_token,
    unbind_chat,
)


async def test_bind_and_get():
    await bind_chat(1, "user-1")
    binding = await get_binding(1)
    assert binding is not None
    assert binding.owner_id == "user-1"
    assert binding.external_chat_id == 1
    assert binding.created_at is not None


async def test_get_unbound():
    assert await get_binding(42) is None


async def test_rebinding_replaces():
    await bind_chat(1, "user-1")
    await bind_chat(1, "user-2")
    binding = await get_binding(1)
    assert binding.owner_id == "user-2"


async def test_one_binding_per_chat(test_db):
    await bind_chat(1, "user-1")
    await bind_chat(1, "user-1")
    cursor = await test_db.execute("SELECT COUNT(*) FROM chat_bindings WHERE external_chat_id = 1")
    row = await cursor.fetchone()
    assert row[0] == 1


async def test_owner_can_have_several_chats():
    await bind_chat(1, "user-1")
    await bind_chat(2, "user-1")
    assert (await get_binding(1)).owner_id == "user-1"
    assert (await get_binding(2)).owner_id == "user-1"


async def test_token_is_single_use():
    token = await issue_link_token("user-1")
    assert len(token) >= 16

    binding = await redeem_link_token(10, token)
    assert binding is not None
    assert binding.owner_id == "user-1"
    assert await redeem_link_token(11, token) is None
    assert await get_binding(11) is None


async def test_unknown_token():
    assert await redeem_link_token(10, "nope") is None


async def test_tokens_are_unique():
    tokens = {await issue_link_token("user-1") for _ in range(5)}
    assert len(tokens) == 5


async def test_unbind():
    await bind_chat(1, "user-1")
    assert await unbind_chat(1) is True
    assert await get_binding(1) is None
    assert await unbind_chat(1) is False
