import io
import os
import re
import tarfile
import tempfile

from ..constants import IS_WINDOWS_PLATFORM


_SEP = re.compile('/|\\\\') if IS_WINDOWS_PLATFORM else re.compile('/')


def tar(path, exclude=None, dockerfile=None, fileobj=None, gzip=False):
    root = os.path.abspath(path)
    exclude = exclude or []
    return create_archive(
        files=sorted(exclude_paths(root, exclude, dockerfile=dockerfile)),
        root=root, fileobj=fileobj, gzip=gzip
    )


def split_path(p):
    return [pt for pt in re.split(_SEP, p) if pt and pt != '.']


def normalize_slashes(p):
    if IS_WINDOWS_PLATFORM:
        return '/'.join(split_path(p))
    return p


def _normalize_pattern(p):
    # "." components are irrelevant and ".." clears the previous component,
    # following Go's filepath.Clean used by the Docker CLI.
    parts = []
    for part in split_path(p):
        if part == '..':
            if parts:
                parts.pop()
        else:
            parts.append(part)
    return '/'.join(parts)


def _compile_pattern(pattern):
    out = []
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if pattern.startswith('**', i):
            i += 2
            if pattern.startswith('/', i):
                out.append('(?:.*/)?')
                i += 1
            else:
                out.append('.*')
            continue
        if c == '*':
            out.append('[^/]*')
        elif c == '?':
            out.append('[^/]')
        elif c == '[':
            close = pattern.find(']', i + 1)
            if close < 0:
                out.append(re.escape(c))
            else:
                cls = pattern[i + 1:close]
                if cls.startswith('!'):
                    cls = '^' + cls[1:]
                out.append(f'[{cls}]')
                i = close
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile(''.join(out) + '$')


def compile_dockerignore(patterns):
    """
    Turn .dockerignore lines into a list of ``(include, regex)`` rules, in
    the order they must be evaluated.
    """
    rules = []
    for p in patterns:
        p = p.strip()
        if not p or p.startswith('#'):
            continue
        include = p.startswith('!')
        if include:
            p = p[1:].strip()
        p = _normalize_pattern(p)
        if not p:
            continue
        rules.append((include, _compile_pattern(p)))
    return rules


def is_excluded(path, rules):
    """
    A path is excluded when the last rule matching it, or one of its parent
    directories, is an exclusion.
    """
    parts = path.split('/')
    candidates = ['/'.join(parts[:i]) for i in range(1, len(parts) + 1)]
    excluded = False
    for include, regex in rules:
        if any(regex.match(c) for c in candidates):
            excluded = not include
    return excluded


def exclude_paths(root, patterns, dockerfile=None):
    """
    Given a root directory path and a list of .dockerignore patterns, return
    a set of all paths (both regular files and directories) in the root
    directory that do *not* match any of the patterns.

    All paths returned are relative to the root. The Dockerfile and the
    .dockerignore file are always included.
    """
    rules = compile_dockerignore(patterns)
    always = {'.dockerignore', _normalize_pattern(dockerfile or 'Dockerfile')}

    paths = set()
    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = normalize_slashes(os.path.relpath(dirpath, root))
        for name in dirnames + filenames:
            path = name if rel_dir == '.' else f'{rel_dir}/{name}'
            if path in always or not is_excluded(path, rules):
                paths.add(path)
    return paths


def create_archive(root, files=None, fileobj=None, gzip=False):
    if not fileobj:
        fileobj = tempfile.NamedTemporaryFile()
    t = tarfile.open(mode='w:gz' if gzip else 'w', fileobj=fileobj)
    if files is None:
        files = sorted(exclude_paths(root, []))
    for path in files:
        full_path = os.path.join(root, path)

        i = t.gettarinfo(full_path, arcname=path)
        if i is None:
            # This happens when we encounter a socket file. We can safely
            # ignore it and proceed.
            continue

        if IS_WINDOWS_PLATFORM:
            # Windows doesn't keep track of the execute bit, so we make files
            # and directories executable by default.
            i.mode = i.mode & 0o755 | 0o111

        if i.isfile():
            try:
                with open(full_path, 'rb') as f:
                    t.addfile(i, f)
            except OSError as e:
                raise OSError(
                    f'Can not read file in context: {full_path}'
                ) from e
        else:
            # Directories, FIFOs, symlinks... don't need to be read.
            t.addfile(i, None)

    t.close()
    fileobj.seek(0)
    return fileobj


def mkbuildcontext(dockerfile):
    f = tempfile.NamedTemporaryFile()
    t = tarfile.open(mode='w', fileobj=f)
    if isinstance(dockerfile, io.StringIO):
        raise TypeError('Please use io.BytesIO to create in-memory '
                        'Dockerfiles')
    elif isinstance(dockerfile, io.BytesIO):
        dfinfo = tarfile.TarInfo('Dockerfile')
        dfinfo.size = len(dockerfile.getvalue())
        dockerfile.seek(0)
    else:
        dfinfo = t.gettarinfo(fileobj=dockerfile, arcname='Dockerfile')
    t.addfile(dfinfo, dockerfile)
    t.close()
    f.seek(0)
    return f
