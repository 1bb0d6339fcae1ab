from codesearch.orchestrators.search.backends.ripgrep import RipgrepAdapter
from codesearch.orchestrators.search.backends.git_grep import GitGrepAdapter
from codesearch.orchestrators.search.backends.grep import GrepAdapter
from codesearch.orchestrators.search.backends.ast_grep import AstGrepAdapter

__all__ = [
    "RipgrepAdapter",
    "GitGrepAdapter",
    "GrepAdapter",
    "AstGrepAdapter",
]
