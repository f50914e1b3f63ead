"""
Tests for the ruler namespace resource.
"""

import pytest
from mimirtool_provider.core.errors import ValidationError
from mimirtool_provider.providers.ruler_namespace import RulerNamespaceResource
from mimirtool_provider.rules import RuleNamespace
from structlog.testing import capture_logs

CONFIG = """
groups:
  - name: availability
    rules:
      - alert: ServiceDown
        expr: up == 0
        for: 5m
  - name: latency
    rules:
      - alert: HighLatency
        expr: histogram_quantile(0.99, rate(http_request_duration_seconds_bucket[5m])) > 1
"""

UPDATED = """
groups:
  - name: availability
    rules:
      - alert: ServiceDown
        expr: up == 0
        for: 10m
  - name: errors
    rules:
      - alert: HighErrorRate
        expr: rate(http_errors[5m]) > 0.1
"""


def desired(config=CONFIG, **extra):
    return {"namespace": "payment-api", "config_yaml": config, **extra}


class TestSchema:
    def test_schema(self):
        schema = RulerNamespaceResource.schema()

        assert schema.name == "mimirtool_ruler_namespace"
        assert schema.attribute("namespace").required
        assert schema.attribute("namespace").force_new
        assert schema.attribute("config_yaml").required
        assert schema.attribute("strict_recording_rule_name_check").default is False


class TestPlan:
    @pytest.mark.asyncio
    async def test_plan_create(self, make_context):
        resource = RulerNamespaceResource(make_context())

        plan = await resource.plan(desired())

        assert plan.has_changes
        assert [(c.action, c.details["group"]) for c in plan.changes] == [
            ("create", "availability"),
            ("create", "latency"),
        ]
        assert plan.metadata["exists"] is False

    @pytest.mark.asyncio
    async def test_plan_no_changes_after_apply(self, make_context):
        resource = RulerNamespaceResource(make_context())
        await resource.apply(desired())

        plan = await resource.plan(desired())

        assert not plan.has_changes

    @pytest.mark.asyncio
    async def test_plan_update_and_delete(self, make_context):
        resource = RulerNamespaceResource(make_context())
        await resource.apply(desired())

        plan = await resource.plan(desired(UPDATED))

        assert [(c.action, c.details["group"]) for c in plan.changes] == [
            ("delete", "latency"),
            ("update", "availability"),
            ("create", "errors"),
        ]

    @pytest.mark.asyncio
    async def test_plan_rejects_invalid_rules(self, make_context):
        resource = RulerNamespaceResource(make_context())

        with pytest.raises(ValidationError) as exc_info:
            await resource.plan(desired("groups:\n  - name: g\n    rules:\n      - expr: up\n"))

        assert "exactly one" in exc_info.value.details["issues"]

    @pytest.mark.asyncio
    async def test_plan_requires_namespace(self, make_context):
        resource = RulerNamespaceResource(make_context())

        with pytest.raises(ValidationError):
            await resource.plan({"config_yaml": CONFIG})

    @pytest.mark.asyncio
    async def test_strict_check_from_desired_state(self, make_context):
        resource = RulerNamespaceResource(make_context())
        config = "groups:\n  - name: g\n    rules:\n      - record: http_total\n        expr: up\n"

        await resource.plan(desired(config))
        with pytest.raises(ValidationError):
            await resource.plan(desired(config, strict_recording_rule_name_check=True))


class TestApply:
    @pytest.mark.asyncio
    async def test_apply_creates_groups(self, make_context, fake_client):
        resource = RulerNamespaceResource(make_context())

        state = await resource.apply(desired())

        assert sorted(fake_client.rules["payment-api"]) == ["availability", "latency"]
        assert state["id"] == "payment-api"
        assert state["namespace"] == "payment-api"
        assert state["config_yaml"] == RuleNamespace.from_yaml("payment-api", CONFIG).to_yaml()
        assert state["strict_recording_rule_name_check"] is False

    @pytest.mark.asyncio
    async def test_apply_update_deletes_before_pushing(self, make_context, fake_client):
        resource = RulerNamespaceResource(make_context())
        await resource.apply(desired())
        fake_client.calls.clear()

        await resource.apply(desired(UPDATED))

        mutations = [c for c in fake_client.calls if c[0] != "list_rules"]
        assert mutations == [
            ("delete_rule_group", "payment-api", "latency"),
            ("create_rule_group", "payment-api", "availability"),
            ("create_rule_group", "payment-api", "errors"),
        ]
        assert fake_client.rules["payment-api"]["availability"].rules[0]["for"] == "10m"

    @pytest.mark.asyncio
    async def test_apply_stores_sha256_when_enabled(self, make_context):
        resource = RulerNamespaceResource(make_context(store_rules_sha256=True))

        state = await resource.apply(desired())

        assert state["config_yaml"] == RuleNamespace.from_yaml("payment-api", CONFIG).sha256()

    @pytest.mark.asyncio
    async def test_apply_stores_verbatim_by_default(self, make_context):
        resource = RulerNamespaceResource(make_context())

        state = await resource.apply(desired())

        assert "groups:" in state["config_yaml"]

    @pytest.mark.asyncio
    async def test_apply_logs_namespace(self, make_context):
        resource = RulerNamespaceResource(make_context())

        with capture_logs() as logs:
            await resource.apply(desired())

        applied = [entry for entry in logs if entry["event"] == "ruler_namespace_applied"]
        assert applied == [
            {"event": "ruler_namespace_applied", "log_level": "info", "namespace": "payment-api", "changes": 2}
        ]


class TestRead:
    @pytest.mark.asyncio
    async def test_read_existing(self, make_context):
        resource = RulerNamespaceResource(make_context())
        applied = await resource.apply(desired())

        state = await resource.read({"namespace": "payment-api"})

        assert state == applied

    @pytest.mark.asyncio
    async def test_read_missing_returns_none(self, make_context):
        resource = RulerNamespaceResource(make_context())

        assert await resource.read({"namespace": "payment-api"}) is None

    @pytest.mark.asyncio
    async def test_read_by_id(self, make_context):
        resource = RulerNamespaceResource(make_context())
        await resource.apply(desired())

        state = await resource.read({"id": "payment-api"})

        assert state["namespace"] == "payment-api"

    @pytest.mark.asyncio
    async def test_import_state(self, make_context):
        resource = RulerNamespaceResource(make_context(store_rules_sha256=True))
        await resource.apply(desired())

        state = await resource.import_state("payment-api")

        assert state["config_yaml"] == RuleNamespace.from_yaml("payment-api", CONFIG).sha256()


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete(self, make_context, fake_client):
        resource = RulerNamespaceResource(make_context())
        await resource.apply(desired())

        await resource.delete({"namespace": "payment-api"})

        assert "payment-api" not in fake_client.rules

    @pytest.mark.asyncio
    async def test_delete_missing_is_noop(self, make_context):
        resource = RulerNamespaceResource(make_context())

        await resource.delete({"namespace": "payment-api"})


class TestDrift:
    @pytest.mark.asyncio
    async def test_no_drift(self, make_context):
        resource = RulerNamespaceResource(make_context())
        state = await resource.apply(desired())

        assert not (await resource.drift(state)).has_changes

    @pytest.mark.asyncio
    async def test_drift_detected(self, make_context, fake_client):
        resource = RulerNamespaceResource(make_context(store_rules_sha256=True))
        state = await resource.apply(desired())
        await fake_client.delete_rule_group("payment-api", "latency")

        drift = await resource.drift(state)

        assert drift.changes[0].action == "update"
        assert drift.changes[0].details["field"] == "config_yaml"

    @pytest.mark.asyncio
    async def test_drift_namespace_removed(self, make_context, fake_client):
        resource = RulerNamespaceResource(make_context())
        state = await resource.apply(desired())
        await fake_client.delete_namespace("payment-api")

        drift = await resource.drift(state)

        assert drift.changes[0].action == "create"

    @pytest.mark.asyncio
    async def test_drift_requires_namespace(self, make_context, fake_client):
        resource = RulerNamespaceResource(make_context())

        with pytest.raises(ValidationError):
            await resource.drift({})

        assert fake_client.calls == []
