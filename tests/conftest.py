"""Root test configuration."""

import logging
import os

import pytest
import structlog
from mimirtool_provider.clients.mimir import AlertmanagerUserConfig
from mimirtool_provider.config import ProviderConfig
from mimirtool_provider.core.errors import ResourceNotFoundError
from mimirtool_provider.providers.base import ProviderContext
from mimirtool_provider.rules import RuleGroup


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture(autouse=True)
def clean_mimir_env(monkeypatch):
    """Keep the developer's MIMIR_* variables out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith("MIMIR_"):
            monkeypatch.delenv(name, raising=False)


class FakeMimirClient:
    """In-memory stand-in for MimirClient."""

    def __init__(self) -> None:
        self.rules: dict[str, dict[str, RuleGroup]] = {}
        self.alertmanager: AlertmanagerUserConfig | None = None
        self.calls: list[tuple] = []

    async def create_rule_group(self, namespace, group):
        self.calls.append(("create_rule_group", namespace, group.name))
        self.rules.setdefault(namespace, {})[group.name] = RuleGroup.from_dict(group.to_dict())

    async def get_rule_group(self, namespace, group_name):
        try:
            return self.rules[namespace][group_name]
        except KeyError:
            raise ResourceNotFoundError("requested resource not found", status_code=404) from None

    async def list_rules(self, namespace=None):
        self.calls.append(("list_rules", namespace))
        if namespace is None:
            if not self.rules:
                raise ResourceNotFoundError("requested resource not found", status_code=404)
            return {ns: list(groups.values()) for ns, groups in self.rules.items()}
        if namespace not in self.rules:
            raise ResourceNotFoundError("requested resource not found", status_code=404)
        return {namespace: list(self.rules[namespace].values())}

    async def delete_rule_group(self, namespace, group_name):
        self.calls.append(("delete_rule_group", namespace, group_name))
        self.rules.get(namespace, {}).pop(group_name, None)
        if namespace in self.rules and not self.rules[namespace]:
            del self.rules[namespace]

    async def delete_namespace(self, namespace):
        self.calls.append(("delete_namespace", namespace))
        if namespace not in self.rules:
            raise ResourceNotFoundError("requested resource not found", status_code=404)
        del self.rules[namespace]

    async def create_alertmanager_config(self, config_yaml, templates):
        self.calls.append(("create_alertmanager_config",))
        self.alertmanager = AlertmanagerUserConfig(config_yaml, dict(templates))

    async def get_alertmanager_config(self):
        if self.alertmanager is None:
            raise ResourceNotFoundError("requested resource not found", status_code=404)
        return self.alertmanager

    async def delete_alertmanager_config(self):
        self.calls.append(("delete_alertmanager_config",))
        if self.alertmanager is None:
            raise ResourceNotFoundError("requested resource not found", status_code=404)
        self.alertmanager = None

    async def alertmanager_status(self):
        return {"cluster": {"status": "ready"}}


@pytest.fixture
def fake_client():
    return FakeMimirClient()


@pytest.fixture
def make_context(fake_client):
    def _make(**config_kwargs) -> ProviderContext:
        config_kwargs.setdefault("url", "https://mimir.example.com")
        return ProviderContext(
            client=fake_client,
            config=ProviderConfig(**config_kwargs),
            user_agent="terraform-provider-mimirtool/test",
        )

    return _make
