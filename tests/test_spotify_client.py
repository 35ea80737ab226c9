import spotipy

from spotify_ssh.auth import CredentialManager
from spotify_ssh.spotify_client import close_sessions, create_authorization_manager, create_spotify_client


def test_client_uses_credential_manager_and_shared_session(credentials, fake_session):
    sp = create_spotify_client(credentials, session=fake_session)

    assert isinstance(sp, spotipy.Spotify)
    assert isinstance(sp.auth_manager, CredentialManager)
    assert sp._session is fake_session
    assert sp.auth_manager._session is fake_session


def test_close_sessions_closes_shared_session(credentials, fake_session):
    sp = create_spotify_client(credentials, session=fake_session)

    close_sessions(sp)

    assert fake_session.closed


def test_authorization_manager_requests_read_scopes(monkeypatch):
    monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
    monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "secret")

    manager = create_authorization_manager("http://127.0.0.1:8888/callback")

    assert manager.client_id == "id"
    assert manager.redirect_uri == "http://127.0.0.1:8888/callback"
    assert "user-read-currently-playing" in manager.scope
    assert "user-read-recently-played" in manager.scope
