"""
认证服务测试
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from wm_core.utils.errors import NotFoundError, UnauthorizedError, ValidationError


@pytest.mark.asyncio
async def test_login_creates_then_reuses_user(auth_service, db_manager):
    first = await auth_service.login("abc123", {"nick_name": "小明", "gender": 1})

    assert first["user"]["open_id"] == "wx_openid_abc123"
    assert first["user"]["nick_name"] == "小明"
    assert first["token_type"] == "bearer"
    assert first["expires_in"] == 7 * 24 * 3600

    second = await auth_service.login("abc123", {"city": "深圳"})
    assert second["user"]["id"] == first["user"]["id"]
    assert second["user"]["nick_name"] == "小明"
    assert second["user"]["city"] == "深圳"


@pytest.mark.asyncio
async def test_login_rejects_blank_code(auth_service):
    with pytest.raises(ValidationError):
        await auth_service.login("  ")


@pytest.mark.asyncio
async def test_token_roundtrip_and_payload(auth_service):
    login = await auth_service.login("tokencode")

    payload = auth_service.decode_token(login["token"])
    assert payload["sub"] == str(login["user"]["id"])
    assert payload["open_id"] == "wx_openid_tokencode"
    assert payload["type"] == "access"
    assert auth_service.user_id_from_token(login["token"]) == login["user"]["id"]


@pytest.mark.asyncio
async def test_invalid_tokens_are_rejected(auth_service):
    settings = auth_service.settings

    with pytest.raises(UnauthorizedError):
        auth_service.decode_token("not-a-token")

    expired = jwt.encode(
        {"sub": "1", "type": "access", "exp": datetime.now(timezone.utc) - timedelta(minutes=1)},
        settings.secret_key, algorithm=settings.algorithm,
    )
    with pytest.raises(UnauthorizedError):
        auth_service.decode_token(expired)

    wrong_type = jwt.encode(
        {"sub": "1", "type": "refresh", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        settings.secret_key, algorithm=settings.algorithm,
    )
    with pytest.raises(UnauthorizedError):
        auth_service.decode_token(wrong_type)

    forged = jwt.encode(
        {"sub": "1", "type": "access", "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
        "another-secret", algorithm=settings.algorithm,
    )
    with pytest.raises(UnauthorizedError):
        auth_service.decode_token(forged)


@pytest.mark.asyncio
async def test_profile(auth_service, seed):
    profile = await auth_service.get_profile(seed.user_id)
    assert profile["nick_name"] == "测试用户"

    updated = await auth_service.update_profile(seed.user_id, {"nick_name": "新名字", "open_id": "hijack"})
    assert updated["nick_name"] == "新名字"
    assert updated["open_id"] == "wx_openid_seed"

    with pytest.raises(NotFoundError):
        await auth_service.get_profile(9999)
