"""prebyte - text preprocessor with variables, conditionals, loops, macros,
profiles and includes.

Usage::

    from prebyte import Prebyte

    pb = Prebyte()
    pb.set_variable("LIST", ["a", "b"])
    pb.process("%%for item in LIST%%[%%item%%]%%endfor%%")   # '[a][b]'
"""

from prebyte._version import __version__
from prebyte.api import Prebyte
from prebyte.engine import PreprocessError

__all__ = ["Prebyte", "PreprocessError", "__version__"]
