"""
magpie.utils.stacks
~~~~~~~~~~~~~~~~~~~

:copyright: (c) 2010-2012 by the Sentry Team, see AUTHORS for more details.
:license: BSD, see LICENSE for more details.
"""
import inspect
import re
import sys

from magpie.utils.serializer import VarsSerializer

__all__ = ('Frame', 'Stacktrace', 'StacktraceBuilder')

_coding_re = re.compile(r'coding[:=]\s*([-\w.]+)')

_site_packages_re = re.compile(r'[\\/](site|dist)-packages[\\/]')


def get_lines_from_file(filename, lineno, context_lines, loader=None, module_name=None):
    """
    Returns context_lines before and after lineno from file.
    Returns (pre_context, context_line, post_context).
    """
    source = None
    if loader is not None and hasattr(loader, "get_source"):
        try:
            source = loader.get_source(module_name)
        except (ImportError, OSError):
            source = None
        if source is not None:
            source = source.splitlines()
    if source is None:
        try:
            with open(filename, 'rb') as f:
                raw = f.readlines()
        except (OSError, IOError):
            raw = None
        if raw is not None:
            encoding = 'utf-8'
            for line in raw[:2]:
                # File coding may be specified. Match pattern from PEP-263
                # (http://www.python.org/dev/peps/pep-0263/)
                match = _coding_re.search(line.decode('ascii', 'replace'))
                if match:
                    encoding = match.group(1)
                    break
            try:
                source = [line.decode(encoding, 'replace') for line in raw]
            except LookupError:
                source = [line.decode('utf-8', 'replace') for line in raw]
    if source is None:
        return [], None, []

    lower_bound = max(0, lineno - context_lines)
    upper_bound = min(lineno + 1 + context_lines, len(source))

    try:
        pre_context = [line.strip('\r\n') for line in source[lower_bound:lineno]]
        context_line = source[lineno].strip('\r\n')
        post_context = [line.strip('\r\n') for line in source[(lineno + 1):upper_bound]]
    except IndexError:
        # the file may have changed since it was loaded into memory
        return [], None, []

    return pre_context, context_line, post_context


def _getitem_from_frame(f_locals, key, default=None):
    """
    f_locals is not guaranteed to have .get(), but it will always
    support __getitem__. Even if it doesnt, we return ``default``.
    """
    try:
        return f_locals[key]
    except Exception:
        return default


def to_dict(dictish):
    """
    Given something that closely resembles a dictionary, we attempt
    to coerce it into a proper dictionary.
    """
    if hasattr(dictish, 'keys'):
        m = dictish.keys
    else:
        raise ValueError(dictish)

    return dict((k, dictish[k]) for k in m())


def iter_traceback_frames(tb):
    """
    Given a traceback object, it will iterate over all
    frames that do not contain the ``__traceback_hide__``
    local variable.
    """
    while tb:
        # support for __traceback_hide__ which is used by a few libraries
        # to hide internal frames.
        f_locals = getattr(tb.tb_frame, 'f_locals', {})
        if not _getitem_from_frame(f_locals, '__traceback_hide__'):
            yield tb.tb_frame, getattr(tb, 'tb_lineno', None)
        tb = tb.tb_next


def iter_stack_frames(frames=None):
    """
    Given an optional list of frames (defaults to current stack),
    iterates over all frames that do not contain the ``__traceback_hide__``
    local variable. Frames are yielded innermost first.
    """
    if not frames:
        frames = inspect.stack(0)[1:]

    for frame, lineno in ((f[0], f[2]) for f in frames):
        f_locals = getattr(frame, 'f_locals', {})
        if _getitem_from_frame(f_locals, '__traceback_hide__'):
            continue
        yield frame, lineno


class Frame(object):
    def __init__(self, function, module, filename, abs_path, lineno,
                 in_app=False, vars=None):
        self.function = function
        self.module = module
        self.filename = filename
        self.abs_path = abs_path
        self.lineno = lineno
        self.in_app = in_app
        self.vars = vars or {}
        self.pre_context = []
        self.context_line = None
        self.post_context = []

    def __repr__(self):
        return '<%s: %s in %s:%s>' % (
            type(self).__name__, self.function, self.filename, self.lineno)


class Stacktrace(object):
    """
    An ordered list of frames, oldest call first.
    """

    def __init__(self, frames):
        if not frames:
            raise ValueError('Expected a non empty list of frames.')
        self.frames = list(frames)

    def add_frame(self, frame):
        self.frames.append(frame)

    def __len__(self):
        return len(self.frames)

    def __iter__(self):
        return iter(self.frames)


class StacktraceBuilder(object):
    """
    Turns traceback and call stack frames into :class:`Stacktrace` objects.
    """

    def __init__(self, options, serializer=None):
        self.options = options
        if serializer is None:
            serializer = VarsSerializer(
                string_max_length=options.string_max_length,
                list_max_length=options.list_max_length,
            )
        self.serializer = serializer

    def build_from_exception(self, exception):
        """
        Returns the stacktrace of where ``exception`` travelled, or ``None``
        if it was never raised.
        """
        frames = list(iter_traceback_frames(exception.__traceback__))
        if not frames:
            return None
        return Stacktrace([self.build_frame(f, lineno) for f, lineno in frames])

    def build_from_backtrace(self, frames=None):
        __traceback_hide__ = True  # NOQA

        if frames is None:
            frames = inspect.stack(0)
        frames = list(iter_stack_frames(frames))
        if not frames:
            return None
        frames.reverse()
        return Stacktrace([self.build_frame(f, lineno) for f, lineno in frames])

    def build_frame(self, frame, lineno=None):
        if lineno is None:
            lineno = frame.f_lineno

        f_globals = getattr(frame, 'f_globals', {})
        f_locals = getattr(frame, 'f_locals', {})

        f_code = getattr(frame, 'f_code', None)
        if f_code:
            abs_path = f_code.co_filename
            function = f_code.co_name
        else:
            abs_path = None
            function = None

        module_name = _getitem_from_frame(f_globals, '__name__')

        # Try to pull a relative file path
        # This changes /foo/site-packages/baz/bar.py into baz/bar.py
        try:
            base_filename = sys.modules[module_name.split('.', 1)[0]].__file__
            filename = abs_path.split(base_filename.rsplit('/', 2)[0], 1)[-1][1:]
        except Exception:
            filename = abs_path

        if not filename:
            filename = abs_path

        if f_locals is not None and not isinstance(f_locals, dict):
            # Some implementations of f_locals are not actually
            # dictionaries
            try:
                f_locals = to_dict(f_locals)
            except Exception:
                f_locals = None

        result = Frame(
            function=function or '<unknown>',
            module=module_name or None,
            filename=filename,
            abs_path=abs_path,
            lineno=lineno,
            in_app=self.is_in_app(module_name, abs_path),
        )
        if f_locals:
            result.vars = self.serializer(f_locals)
        return result

    def is_in_app(self, module_name, abs_path=None):
        if module_name:
            if module_name == 'magpie' or module_name.startswith('magpie.'):
                return False
            if any(module_name.startswith(x) for x in self.options.in_app_exclude):
                return False
            if any(module_name.startswith(x) for x in self.options.in_app_include):
                return True
        if abs_path and _site_packages_re.search(abs_path):
            return False
        return True
