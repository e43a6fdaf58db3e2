import pytest
from jose import jwt

from taskapi.auth import TokenAuthenticator, hash_password, verify_password
from taskapi.errors import AuthenticationError
from taskapi.models import User

from .conftest import TEST_SECRET, auth_header


def test_hash_password_is_salted():
    first = hash_password("Secret123")
    second = hash_password("Secret123")
    assert first != second
    assert first != "Secret123"
    assert verify_password("Secret123", first)
    assert verify_password("Secret123", second)
    assert not verify_password("Secret124", first)


def test_verify_password_with_garbage_hash():
    assert verify_password("Secret123", "not-a-bcrypt-hash") is False


def test_tokens_embed_user_id_and_are_unique(authenticator):
    first = authenticator.create_token("user-1")
    second = authenticator.create_token("user-1")
    assert first != second
    assert authenticator.decode_token(first) == "user-1"
    assert jwt.decode(first, TEST_SECRET, algorithms=["HS256"])["sub"] == "user-1"


def test_decode_rejects_wrong_secret(authenticator):
    forged = TokenAuthenticator(secret_key="other-secret").create_token("user-1")
    assert authenticator.decode_token(forged) is None


def test_decode_rejects_expired_token():
    expired = TokenAuthenticator(secret_key=TEST_SECRET, expire_minutes=-1)
    token = expired.create_token("user-1")
    assert TokenAuthenticator(secret_key=TEST_SECRET).decode_token(token) is None


def test_decode_rejects_token_without_subject():
    token = jwt.encode({"foo": "bar"}, TEST_SECRET, algorithm="HS256")
    assert TokenAuthenticator(secret_key=TEST_SECRET).decode_token(token) is None


def test_authenticate_returns_user_and_matched_token(authenticator, db, seeded):
    context = authenticator.authenticate(db, seeded.user_one_token)
    assert context.user.id == seeded.user_one_id
    assert context.token.token == seeded.user_one_token


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
def test_authenticate_rejects_malformed(authenticator, db, token):
    with pytest.raises(AuthenticationError) as excinfo:
        authenticator.authenticate(db, token)
    assert excinfo.value.detail == "Please authenticate."


def test_authenticate_rejects_valid_but_unlisted_token(authenticator, db, seeded):
    # Signed correctly for a real user, but never issued
    token = authenticator.create_token(seeded.user_one_id)
    with pytest.raises(AuthenticationError):
        authenticator.authenticate(db, token)


def test_authenticate_rejects_revoked_token(authenticator, db, seeded):
    context = authenticator.authenticate(db, seeded.user_one_token)
    authenticator.revoke_token(context)
    db.commit()

    with pytest.raises(AuthenticationError):
        authenticator.authenticate(db, seeded.user_one_token)
    # other users keep their sessions
    assert authenticator.authenticate(db, seeded.user_two_token).user.id == seeded.user_two_id


def test_authenticate_rejects_token_of_deleted_user(authenticator, db, seeded):
    db.delete(db.get(User, seeded.user_one_id))
    db.commit()

    with pytest.raises(AuthenticationError):
        authenticator.authenticate(db, seeded.user_one_token)


def test_issue_token_appends_to_token_list(authenticator, db, seeded):
    user = db.get(User, seeded.user_one_id)
    token = authenticator.issue_token(user)
    db.commit()

    assert [t.token for t in user.tokens] == [seeded.user_one_token, token]
    assert authenticator.authenticate(db, token).user.id == user.id


def test_failures_are_indistinguishable(client, seeded):
    forged = TokenAuthenticator(secret_key="other-secret").create_token(seeded.user_one_id)
    responses = [
        client.get("/users/me"),
        client.get("/users/me", headers={"Authorization": "Basic abc"}),
        client.get("/users/me", headers=auth_header("garbage")),
        client.get("/users/me", headers=auth_header(forged)),
    ]
    assert {r.status_code for r in responses} == {401}
    assert {r.json()["detail"] for r in responses} == {"Please authenticate."}


def test_expired_token_is_rejected_by_api(client, db, seeded, settings):
    expired = TokenAuthenticator(secret_key=settings.secret_key, expire_minutes=-1)
    user = db.get(User, seeded.user_one_id)
    token = expired.issue_token(user)
    db.commit()

    assert client.get("/users/me", headers=auth_header(token)).status_code == 401
