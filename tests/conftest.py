from unittest.mock import AsyncMock, MagicMock

import pytest

from logmailer.aggregator import LogAggregator
from logmailer.classifier import EventClassifier
from logmailer.config import Config
from logmailer.models import RenderResult
from logmailer.notifier import Notifier
from logmailer.scheduler import DispatchScheduler

ERR = "PROCESS_LOG_STDERR"
OUT = "PROCESS_LOG_STDOUT"


@pytest.fixture
def config():
    return Config(
        targets={ERR: ("svc", "worker"), OUT: ("svc",)},
        error_category=ERR,
        broadcast_marker="BROADCST:EMAIL",
        debounce_sec=0.05,
        mail_to=("ops@example.com",),
        mail_subject="logs",
    )


@pytest.fixture
def aggregator(config):
    return LogAggregator(list(config.targets))


@pytest.fixture
def renderer():
    """Renderer stub that echoes labels so tests can inspect what was flushed."""
    mock = MagicMock()
    mock.render.side_effect = lambda logs: RenderResult(
        output="|".join(f"{e.label}={e.escaped_message}" for e in logs)
    )
    return mock


@pytest.fixture
def transport():
    mock = AsyncMock()
    mock.send.return_value = {"message_id": "<1@example.com>", "refused": []}
    return mock


@pytest.fixture
def notifier(config, aggregator, renderer, transport):
    return Notifier(aggregator, renderer, transport, subject=config.mail_subject, default_label=config.error_category)


@pytest.fixture
def scheduler(config, aggregator, notifier):
    return DispatchScheduler(
        EventClassifier(config.targets), aggregator, notifier,
        error_category=config.error_category,
        broadcast_marker=config.broadcast_marker,
        debounce_sec=config.debounce_sec,
    )
