"""LearnPath student progress engine.

Keep package import lightweight; import submodules explicitly where needed.
"""

__version__ = "1.0.0"
__all__ = [
	"assignments",
	"attendance",
	"client",
	"config",
	"exceptions",
	"metrics",
	"models",
	"schedule",
	"timeline",
	"topics",
	"upcoming",
]
