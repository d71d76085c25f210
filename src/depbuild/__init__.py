"""depbuild - a stage-based orchestrator for building third-party dependencies."""

from .context import BuildContext as BuildContext
from .errors import BuildError as BuildError
from .errors import ConfigError as ConfigError
from .errors import ConfigNotFound as ConfigNotFound
from .errors import NothingToBuild as NothingToBuild
from .errors import StageFailed as StageFailed
from .errors import ToolUnavailable as ToolUnavailable
from .library import LibrarySpec as LibrarySpec
from .matrix import BuildMatrix as BuildMatrix
from .platform import PlatformConfig as PlatformConfig
from .settings import Settings as Settings
from .stage import Stage as Stage
from .step import Step as Step
from .step import step as step
from .stepset import STAGES as STAGES
from .stepset import StepSet as StepSet
from .workspace import Workspace as Workspace
