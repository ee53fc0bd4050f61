from __future__ import annotations

import stepweave.utils as utils
from stepweave import direct
from stepweave.utils import capture_definition_site, describe_callable


def sample():
    return None


class TestDescribeCallable:
    def test_module_function(self):
        assert describe_callable(sample).endswith(".sample")

    def test_builtin(self):
        assert describe_callable(len) == "len"

    def test_non_callable(self):
        assert describe_callable(3) == "3"

    def test_callable_instance_without_name(self):
        class Runner:
            def __call__(self):
                return None

        assert describe_callable(Runner()) == "Runner"


class TestDefinitionSite:
    def test_disabled_by_default(self, monkeypatch):
        monkeypatch.setattr(utils, "DEBUG_STEPS", False)

        assert capture_definition_site() is None
        assert direct(sample).defined_at is None

    def test_points_at_caller_when_enabled(self, monkeypatch):
        monkeypatch.setattr(utils, "DEBUG_STEPS", True)

        spec = direct(sample)

        assert spec.defined_at is not None
        assert "test_utils.py" in spec.defined_at
        assert "defined at" in spec.describe()
