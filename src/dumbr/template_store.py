"""
Template Store

Loads every template file under a directory into an immutable registry
keyed by the file's base name. Templates are Jinja2 templates rendered as
plain text: no autoescaping, trailing newlines kept, and any reference to
a name missing from the render context is an error rather than an empty
string.

Loading is best effort. A file that cannot be read or parsed is logged and
skipped; only a missing root directory stops the load.
"""

import logging
import os
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from jinja2 import DictLoader, Environment, StrictUndefined, Template, TemplateSyntaxError

from .errors import TemplateDirectoryError, TemplateNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".template"


def _environment(sources: Optional[Mapping[str, str]] = None) -> Environment:
    return Environment(
        loader=DictLoader(dict(sources or {})),
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
    )


class TemplateStore:
    """Read-only set of compiled templates, safe to share between requests."""

    def __init__(self, sources: Mapping[str, str]):
        """
        Compile a set of template sources.

        Args:
            sources: Template source text keyed by template name. Names are
                also what ``{% include %}`` and ``{% extends %}`` resolve.
        """
        self._env = _environment(sources)
        self._templates: Mapping[str, Template] = MappingProxyType(
            {name: self._env.get_template(name) for name in sources}
        )

    @classmethod
    def load(
        cls,
        root: str,
        extension: str = DEFAULT_EXTENSION,
        log: Optional[logging.Logger] = None,
    ) -> "TemplateStore":
        """
        Walk ``root`` and compile every file whose path contains ``extension``.

        Directories are visited in lexical order. When two files share a base
        name the one visited last wins.

        Args:
            root: Template root directory
            extension: Substring a file path (relative to root) must contain
            log: Logger for per-file results (defaults to the module logger)

        Returns:
            TemplateStore holding every template that parsed

        Raises:
            TemplateDirectoryError: If root does not exist or is not a directory
        """
        log = log or logger
        if not os.path.isdir(root):
            raise TemplateDirectoryError(f"template directory not found: {root}")

        checker = _environment()
        sources: Dict[str, str] = {}

        def on_walk_error(e: OSError) -> None:
            log.error(f"Failed in walking template folder:{root}, error:{e}")

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error):
            dirnames.sort()
            for filename in sorted(filenames):
                path = os.path.join(dirpath, filename)
                if extension not in os.path.relpath(path, root):
                    continue
                try:
                    with open(path, "r", encoding="utf-8") as f:
                        source = f.read()
                    checker.compile(source, name=filename, filename=path)
                except (OSError, UnicodeDecodeError, TemplateSyntaxError) as e:
                    log.error(f"Failed in parsing template:{path}, error:{e}")
                    continue
                if filename in sources:
                    log.warning(f"Template {filename} defined more than once, using {path}")
                sources[filename] = source
                log.info(f"Parsed template from templateFolder:{root}, template:{path}")

        log.info(f"Parsed {len(sources)} templates in folder:{root}")
        return cls(sources)

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    def names(self) -> List[str]:
        return sorted(self._templates)

    def render(self, name: str, context: Mapping[str, Any]) -> Iterator[str]:
        """
        Render a template lazily.

        Rendering errors (undefined names, failing filters, missing includes)
        are raised while the returned iterator is consumed.

        Raises:
            TemplateNotFoundError: If no template is registered under name
        """
        template = self._templates.get(name)
        if template is None:
            raise TemplateNotFoundError(name)
        return template.generate(context)
