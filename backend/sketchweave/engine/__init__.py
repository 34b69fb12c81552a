"""SketchWeave canvas engine — synthesis, connection, interpretation, reconciliation."""

from sketchweave.engine.registry import action_handler, get_registry
from sketchweave.engine.scene import Scene, SceneAccessor, SceneStore
from sketchweave.engine.ids import IdGenerator, RandomIdGenerator, SequentialIdGenerator
from sketchweave.engine.synthesizer import SynthesisResult, complete_element, describe_from_text, synthesize
from sketchweave.engine.connection import connect
from sketchweave.engine.interpreter import execute_action, execute_actions
from sketchweave.engine.reconciler import ReconcileResult, reconcile, validate_batch
from sketchweave.engine.relationships import Relationship, detect_relationships, serialize_selection
