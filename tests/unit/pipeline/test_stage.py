"""Unit tests for Stage abstract base class."""

from unittest.mock import Mock

import pytest

from armcnv.pipeline_core import PipelineContext, Stage
from armcnv.pipeline_core.error_handling import PipelineError


class ConcreteStage(Stage):
    """Concrete implementation for testing."""

    def __init__(self, name="test_stage", dependencies=None):
        self._name = name
        self._dependencies = dependencies or set()
        self.process_called = False

    @property
    def name(self):
        """Return the stage name."""
        return self._name

    @property
    def dependencies(self):
        """Return the stage dependencies."""
        return self._dependencies

    def _process(self, context):
        self.process_called = True
        return context


class FailingStage(Stage):
    """Stage that fails during processing."""

    @property
    def name(self):
        """Return the stage name."""
        return "failing_stage"

    def _process(self, context):
        raise ValueError("Stage failed!")


class TestStage:
    """Test suite for Stage base class."""

    @pytest.fixture
    def context(self):
        """Create a mock PipelineContext."""
        context = Mock(spec=PipelineContext)
        context.is_complete = Mock(return_value=False)
        context.mark_complete = Mock()
        return context

    def test_stage_properties(self):
        """Test stage property defaults."""
        stage = ConcreteStage()
        assert stage.name == "test_stage"
        assert stage.dependencies == set()
        assert stage.description == "Stage: test_stage"

    def test_successful_execution(self, context):
        """Test successful stage execution marks the stage complete."""
        stage = ConcreteStage()

        result = stage(context)

        assert result is context
        assert stage.process_called
        context.mark_complete.assert_called_once_with("test_stage")

    def test_missing_dependencies(self, context):
        """Test that unmet dependencies raise before processing."""
        stage = ConcreteStage(dependencies={"dep1", "dep2"})
        context.is_complete = Mock(side_effect=lambda name: name == "dep1")

        with pytest.raises(PipelineError, match="dep2"):
            stage(context)

        assert not stage.process_called

    def test_already_complete_is_skipped(self, context):
        """Test that a completed stage is not processed again."""
        stage = ConcreteStage()
        context.is_complete = Mock(return_value=True)

        stage(context)

        assert not stage.process_called
        context.mark_complete.assert_not_called()

    def test_failure_propagates(self, context):
        """Test that processing errors propagate and the stage is not marked complete."""
        stage = FailingStage()

        with pytest.raises(ValueError, match="Stage failed!"):
            stage(context)

        context.mark_complete.assert_not_called()

    def test_repr(self):
        """Test string representation."""
        assert repr(ConcreteStage()) == "ConcreteStage(name='test_stage')"
        assert "depends_on" in repr(ConcreteStage(dependencies={"a"}))
