from unittest import mock

import requests

from parts.notifier import INSTALLED, WebhookNotifier

from conftest import FakeResponse, make_definition


def _notifier(cfg, session, url="https://hooks.example.org/parts"):
    cfg.merged["webhook"].update({"enabled": True, "url": url})
    return WebhookNotifier(cfg, session=session)


def test_posts_form_fields(cfg, layout, monkeypatch):
    session = mock.Mock()
    session.post.return_value = FakeResponse(200)
    monkeypatch.setattr(WebhookNotifier, "container", staticmethod(lambda: "box-1"))
    pkg = make_definition("foo", "1.0")(layout)

    assert _notifier(cfg, session).notify(INSTALLED, pkg)

    session.post.assert_called_once_with(
        "https://hooks.example.org/parts",
        data={"type": "installed", "name": "foo", "version": "1.0", "container": "box-1"},
        timeout=10.0,
    )


def test_disabled_without_url(cfg, layout):
    session = mock.Mock()
    notifier = _notifier(cfg, session, url=None)
    assert not notifier.notify(INSTALLED, make_definition("foo", "1.0")(layout))
    session.post.assert_not_called()


def test_transport_errors_are_swallowed(cfg, layout):
    session = mock.Mock()
    session.post.side_effect = requests.ConnectionError("refused")
    assert not _notifier(cfg, session).notify(INSTALLED, make_definition("foo", "1.0")(layout))


def test_error_status_is_reported_not_raised(cfg, layout):
    session = mock.Mock()
    session.post.return_value = FakeResponse(500)
    assert not _notifier(cfg, session).notify(INSTALLED, make_definition("foo", "1.0")(layout))
