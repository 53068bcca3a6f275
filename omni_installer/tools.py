"""Catalog of installable tools and how to install them on each platform.

A :class:`ToolSpec` pairs a presence check with per-family install steps.
Steps are argv templates, package-manager installs, or recipe functions for
tools whose installation is more than a couple of commands. Templates are
expanded one argument at a time; no command is ever built as a shell string.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Union

from .download import (
    GO_VERSION_URL,
    PYPI_PIP_URL,
    PYTHON_FTP_URL,
    PYTHON_SOURCE_URL,
    go_archive_name,
    go_download_url,
    parse_go_version,
    parse_pypi_version,
    parse_python_versions,
)
from .errors import CommandFailed
from .platforms import Family
from .utils import current_platform

if TYPE_CHECKING:
    from .installer import InstallContext

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def expand(argv: tuple[str, ...] | list[str], variables: Mapping[str, str]) -> list[str]:
    """Substitute ``{name}`` placeholders in each argument.

    Unknown placeholders are left untouched so literal braces survive.
    """
    return [
        _PLACEHOLDER.sub(lambda m: variables.get(m.group(1), m.group(0)), arg)
        for arg in argv
    ]


@dataclass(frozen=True)
class Packages:
    """Install packages with the platform's package manager."""

    names: tuple[str, ...]

    def execute(self, ctx: InstallContext) -> None:
        ctx.install_packages(*ctx.expand(self.names))


@dataclass(frozen=True)
class Command:
    """Run one command template."""

    argv: tuple[str, ...]
    privileged: bool = False
    package_manager: bool = False

    def execute(self, ctx: InstallContext) -> None:
        if self.package_manager:
            ctx.require_package_index()
        ctx.run(ctx.expand(self.argv), privileged=self.privileged)


@dataclass(frozen=True)
class Recipe:
    """Run a Python function against the install context."""

    func: Callable[[InstallContext], None]

    def execute(self, ctx: InstallContext) -> None:
        self.func(ctx)


Step = Union[Packages, Command, Recipe]


def packages(*names: str) -> tuple[Step, ...]:
    return (Packages(names),)


def recipe(func: Callable[[InstallContext], None]) -> tuple[Step, ...]:
    return (Recipe(func),)


@dataclass(frozen=True)
class ToolSpec:
    """Static description of how to check for and install one tool.

    A pinned version that differs from the installed one is handled by the
    `remove` steps, or by the install steps themselves when
    `replaces_in_place` is set. `latest_url` makes the newest release the
    implicit pin, for tools that are kept up to date.
    """

    name: str
    description: str
    checks: tuple[tuple[str, ...], ...]
    install: Mapping[Family, tuple[Step, ...]] = field(default_factory=dict)
    fallback: tuple[Step, ...] = ()
    remove: tuple[Step, ...] = ()
    version_pattern: str | None = None
    versioned: bool = False
    replaces_in_place: bool = False
    latest_url: str | None = None
    latest_parser: Callable[[str], str] | None = None
    any_check: bool = False
    choices: tuple[str, ...] = ()
    default_choice: str | None = None
    path_hints: tuple[str, ...] = ()
    flag: str | None = None

    def __post_init__(self) -> None:
        if not self.checks or not all(self.checks):
            msg = f"Tool {self.name!r} must define a presence check"
            raise ValueError(msg)
        if self.choices and self.default_choice not in self.choices:
            msg = f"Tool {self.name!r} default choice must be one of {self.choices}"
            raise ValueError(msg)
        if self.latest_url and self.latest_parser is None:
            msg = f"Tool {self.name!r} needs a parser for its latest version document"
            raise ValueError(msg)

    def steps_for(self, family: Family) -> tuple[Step, ...]:
        """Install steps for a platform family, empty when there is no route."""
        return self.install.get(family, self.fallback)

    def resolve_choice(self, choice: str | None) -> str | None:
        """Validate a pre-resolved choice, falling back to the default."""
        if choice is None:
            return self.default_choice
        if choice == "skip" or not self.choices:
            return choice
        if choice not in self.choices:
            msg = f"Invalid choice {choice!r} for {self.name}, expected one of {', '.join(self.choices)}"
            raise ValueError(msg)
        return choice


# -- system tools --


def _machine() -> str:
    return "aarch64" if current_platform()[1] == "arm64" else "x86_64"


COMPOSE_VERSION = "v2.23.0"
COMPOSE_URL = "https://github.com/docker/compose/releases/download/{version}/docker-compose-{system}-{machine}"


def _install_compose(ctx: InstallContext) -> None:
    system, _ = current_platform()
    url = COMPOSE_URL.format(version=COMPOSE_VERSION, system=system, machine=_machine())
    if ctx.choice == "plugin":
        docker_config = Path(os.environ.get("DOCKER_CONFIG", ctx.home / ".docker"))
        plugins = docker_config / "cli-plugins"
        ctx.make_dirs(plugins)
        ctx.download(url, plugins / "docker-compose")
        ctx.run(["chmod", "+x", str(plugins / "docker-compose")])
    else:
        binary = ctx.download(url, ctx.tmp / "docker-compose")
        ctx.run(
            ["install", "-m", "0755", str(binary), "/usr/local/bin/docker-compose"],
            privileged=True,
        )


def _install_minikube(ctx: InstallContext) -> None:
    system, arch = current_platform()
    url = f"https://storage.googleapis.com/minikube/releases/latest/minikube-{system}-{arch}"
    binary = ctx.download(url, ctx.tmp / "minikube")
    ctx.run(["install", binary.as_posix(), "/usr/local/bin/minikube"], privileged=True)


KUBECTL_STABLE_URL = "https://dl.k8s.io/release/stable.txt"


def _install_kubectl(ctx: InstallContext) -> None:
    system, arch = current_platform()
    release = ctx.fetch_text(KUBECTL_STABLE_URL).strip()
    url = f"https://dl.k8s.io/release/{release}/bin/{system}/{arch}/kubectl"
    binary = ctx.download(url, ctx.tmp / "kubectl")
    ctx.run(["install", "-m", "0755", str(binary), "/usr/local/bin/kubectl"], privileged=True)


def _build_from_git(
    ctx: InstallContext,
    repo: str,
    subdir: str = "src",
    recursive: bool = False,  # noqa: FBT001, FBT002
) -> None:
    """Clone a repository into the scratch directory, make, and make install."""
    checkout = ctx.tmp / Path(repo).stem
    clone = ["git", "clone"]
    if recursive:
        clone.append("--recurse-submodules")
    ctx.run([*clone, repo, str(checkout)])
    ctx.run(["make", "-C", str(checkout / subdir)])
    ctx.run(["make", "-C", str(checkout / subdir), "install"], privileged=True)


def _install_bpftool(ctx: InstallContext) -> None:
    if ctx.platform.family is Family.DEBIAN:
        try:
            ctx.install_packages(f"linux-tools-{ctx.kernel}")
            return
        except CommandFailed:
            ctx.note("Package installation failed, building bpftool from source", "warning")
    elif ctx.platform.family is Family.RHEL:
        ctx.install_packages("bpftool")
        return
    _build_from_git(ctx, "https://github.com/libbpf/bpftool.git", recursive=True)


OH_MY_ZSH_URL = "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh"
ZSH_PLUGINS = {
    "zsh-autosuggestions": "https://github.com/zsh-users/zsh-autosuggestions.git",
    "zsh-syntax-highlighting": "https://github.com/zsh-users/zsh-syntax-highlighting.git",
}


def _install_zsh(ctx: InstallContext) -> None:
    ctx.install_packages("zsh", "curl", "git")

    oh_my_zsh = ctx.home / ".oh-my-zsh"
    if not oh_my_zsh.is_dir():
        script = ctx.download(OH_MY_ZSH_URL, ctx.tmp / "install-oh-my-zsh.sh")
        ctx.run(["sh", str(script), "--unattended"])

    wanted = ["zsh-syntax-highlighting"]
    if ctx.choice == "both":
        wanted.insert(0, "zsh-autosuggestions")
    plugins_dir = oh_my_zsh / "custom" / "plugins"
    for plugin in wanted:
        if not (plugins_dir / plugin).is_dir():
            ctx.run(["git", "clone", ZSH_PLUGINS[plugin], str(plugins_dir / plugin)])

    ctx.append_lines(
        ctx.home / ".zshrc",
        [
            "# omni-installer: zsh",
            'ZSH_THEME="avit"',
            f"DEFAULT_USER={ctx.user}",
            f"plugins=(git {' '.join(wanted)})",
            "source ~/.oh-my-zsh/oh-my-zsh.sh",
        ],
        marker="# omni-installer: zsh",
    )


def _go_needs_privilege(ctx: InstallContext) -> bool:
    return not os.access(ctx.config.go_install_dir, os.W_OK)


def _remove_go(ctx: InstallContext) -> None:
    ctx.run(["rm", "-rf", str(ctx.config.go_install_dir / "go")], privileged=_go_needs_privilege(ctx))


def _install_go(ctx: InstallContext) -> None:
    version = ctx.version or parse_go_version(ctx.fetch_text(GO_VERSION_URL))
    archive = ctx.download(go_download_url(version), ctx.tmp / go_archive_name(version))

    install_dir = ctx.config.go_install_dir
    ctx.run(
        ["tar", "-C", str(install_dir), "-xzf", str(archive)],
        privileged=_go_needs_privilege(ctx),
    )

    go_root = install_dir / "go"
    ctx.update_profiles([f"export PATH=$PATH:{go_root}/bin"], marker=f"{go_root}/bin")
    ctx.update_profiles(
        [f"export GOROOT={go_root}", "export GOPATH=$HOME/go"],
        marker="GOROOT",
    )
    for sub in ("bin", "src", "pkg"):
        ctx.make_dirs(ctx.home / "go" / sub)
    ctx.extend_path(go_root / "bin")


# -- python --

PYTHON_BUILD_DEPS = {
    Family.DEBIAN: (
        "make", "build-essential", "libssl-dev", "zlib1g-dev", "libbz2-dev",
        "libreadline-dev", "libsqlite3-dev", "wget", "curl", "llvm",
        "libncurses5-dev", "libncursesw5-dev", "xz-utils", "tk-dev",
        "libffi-dev", "liblzma-dev", "libgdbm-dev", "libnss3-dev",
    ),
    Family.RHEL: (
        "zlib-devel", "bzip2", "bzip2-devel", "readline-devel", "sqlite",
        "sqlite-devel", "openssl-devel", "tk-devel", "libffi-devel",
        "xz-devel", "ncurses-devel", "gdbm-devel",
    ),
}


def _short_version(version: str) -> str:
    return ".".join(version.split(".")[:2])


def _install_python_build_deps(ctx: InstallContext) -> None:
    family = ctx.platform.family
    if family is Family.RHEL:
        ctx.require_package_index()
        ctx.run(
            [ctx.platform.package_manager or "dnf", "groupinstall", "-y", "Development Tools"],
            privileged=True,
        )
    if family in PYTHON_BUILD_DEPS:
        ctx.install_packages(*PYTHON_BUILD_DEPS[family])


def _install_python_system(ctx: InstallContext) -> None:
    """Install the distribution's Python 3.

    A pinned release line is installed next to the default interpreter and
    ``python3`` in the first PATH directory is re-pointed at it.
    """
    family = ctx.platform.family
    version = ctx.version
    if family is Family.MACOS:
        if not version:
            ctx.install_packages("python3")
            return
        short = _short_version(version)
        ctx.install_packages(f"python@{short}")
        prefix = ctx.probe(["brew", "--prefix"]).output.strip() or "/usr/local"
        ctx.run(["ln", "-sf", f"{prefix}/bin/python{short}", f"{prefix}/bin/python3"])
        return

    if family is Family.DEBIAN:
        ctx.install_packages(
            "python3", "python3-pip", "python3-venv", "python3-dev", "python3-setuptools",
        )
        suffixes = ("-venv", "-dev")
    else:
        ctx.install_packages("python3", "python3-pip", "python3-devel", "python3-setuptools")
        suffixes = ("-devel",)
    if version:
        short = _short_version(version)
        ctx.install_packages(f"python{short}", *(f"python{short}{suffix}" for suffix in suffixes))
        ctx.run(["ln", "-sf", f"/usr/bin/python{short}", "/usr/local/bin/python3"], privileged=True)


PYENV_INSTALLER_URL = "https://pyenv.run"
_PYENV_RELEASE = re.compile(r"^\s*(\d+\.\d+\.\d+)\s*$", re.MULTILINE)


def _install_python_pyenv(ctx: InstallContext) -> None:
    pyenv_root = ctx.home / ".pyenv"
    ctx.extend_path(pyenv_root / "bin")
    ctx.extend_path(pyenv_root / "shims")
    if not ctx.probe(["pyenv", "--version"]).ok:
        script = ctx.download(PYENV_INSTALLER_URL, ctx.tmp / "pyenv-installer.sh")
        ctx.run(["bash", str(script)])
        ctx.update_profiles(
            [
                'export PATH="$HOME/.pyenv/bin:$PATH"',
                'eval "$(pyenv init --path)"',
                'eval "$(pyenv init -)"',
            ],
            marker="pyenv",
        )

    _install_python_build_deps(ctx)

    version = ctx.version
    if version is None:
        releases = _PYENV_RELEASE.findall(ctx.probe(["pyenv", "install", "--list"]).output)
        if not releases:
            msg = "Could not determine the latest Python release from pyenv"
            raise ValueError(msg)
        version = releases[-1]
    ctx.run(["pyenv", "install", "-s", version])
    ctx.run(["pyenv", "global", version])


def _install_python_source(ctx: InstallContext) -> None:
    version = ctx.version or parse_python_versions(ctx.fetch_text(PYTHON_FTP_URL))
    _install_python_build_deps(ctx)

    tarball = ctx.download(
        PYTHON_SOURCE_URL.format(version=version),
        ctx.tmp / f"Python-{version}.tgz",
    )
    ctx.run(["tar", "-xf", str(tarball), "-C", str(ctx.tmp)])
    source = ctx.tmp / f"Python-{version}"
    ctx.run(["./configure", "--enable-optimizations", "--with-ensurepip=install"], cwd=source)
    ctx.run(["make", "-j", str(os.cpu_count() or 1)], cwd=source)
    ctx.run(["make", "altinstall"], cwd=source, privileged=True)

    short = _short_version(version)
    ctx.run(["ln", "-sf", f"/usr/local/bin/python{short}", "/usr/local/bin/python3"], privileged=True)
    ctx.run(["ln", "-sf", f"/usr/local/bin/pip{short}", "/usr/local/bin/pip3"], privileged=True)


PYTHON_METHODS: dict[str, Callable[[InstallContext], None]] = {
    "system": _install_python_system,
    "pyenv": _install_python_pyenv,
    "source": _install_python_source,
}


def _install_python(ctx: InstallContext) -> None:
    PYTHON_METHODS[ctx.choice or "system"](ctx)


def _install_pip(ctx: InstallContext) -> None:
    if ctx.version:
        ctx.run(["python3", "-m", "pip", "install", "--upgrade", f"pip=={ctx.version}"])
    elif ctx.platform.family in (Family.DEBIAN, Family.RHEL):
        ctx.install_packages("python3-pip")
    else:
        ctx.run(["python3", "-m", "ensurepip", "--upgrade"])


ACTIVATE_SCRIPT = """\
#!/bin/bash
source "{env}/bin/activate"
echo "Activated Python virtual environment: {name}"
echo "Python version: $(python --version)"
echo "Python path: $(which python)"
"""


def _create_venv(ctx: InstallContext) -> None:
    name = ctx.choice or "python-env"
    env = ctx.config.venv_dir / name
    ctx.make_dirs(ctx.config.venv_dir)
    ctx.run(["python3", "-m", "venv", str(env)])
    ctx.write_script(
        ctx.config.venv_dir / f"activate-{name}.sh",
        ACTIVATE_SCRIPT.format(env=env, name=name),
    )
    ctx.note(f"Activate with: source {env}/bin/activate", "info")


PIP_COLLECTIONS = {
    "data-science": (
        "Data science stack (NumPy, Pandas, Matplotlib)",
        ("numpy", "pandas", "matplotlib", "scipy", "seaborn", "plotly", "scikit-learn"),
    ),
    "web-dev": (
        "Web development (Flask, Django, FastAPI)",
        ("flask", "django", "fastapi", "requests", "beautifulsoup4", "selenium"),
    ),
    "dev-tools": (
        "Development tools (Black, Pytest, Jupyter)",
        ("black", "flake8", "pytest", "mypy", "jupyterlab", "ipython", "virtualenv"),
    ),
    "ml-stack": (
        "Machine learning (TensorFlow, PyTorch, Scikit-learn)",
        (
            "tensorflow", "torch", "torchvision", "scikit-learn", "xgboost",
            "lightgbm", "opencv-python", "jupyterlab", "notebook", "matplotlib",
            "seaborn", "plotly",
        ),
    ),
}


def pip_collection(name: str, packages: tuple[str, ...], description: str = "") -> ToolSpec:
    """A tool that pip-installs a set of packages."""
    return ToolSpec(
        name=name,
        description=description or f"pip packages: {', '.join(packages)}",
        checks=tuple(("python3", "-m", "pip", "show", package) for package in packages),
        fallback=(Command(("python3", "-m", "pip", "install", *packages)),),
    )


# -- ebpf --


def _install_kernel_headers_rhel(ctx: InstallContext) -> None:
    ctx.install_packages("kernel-headers", "kernel-devel")
    ctx.run(
        [ctx.platform.package_manager or "dnf", "groupinstall", "-y", "Development Tools"],
        privileged=True,
    )
    ctx.install_packages("clang", "llvm", "elfutils-libelf-devel", "libcap-devel", "openssl-devel")


def _install_libbpf_source(ctx: InstallContext) -> None:
    _build_from_git(ctx, "https://github.com/libbpf/libbpf.git")
    ctx.run(["ldconfig"], privileged=True)


def _build_with_cmake(ctx: InstallContext, repo: str, *cmake_args: str) -> None:
    """Clone a repository into the scratch directory and build it with CMake."""
    checkout = ctx.tmp / Path(repo).stem
    build = checkout / "build"
    ctx.run(["git", "clone", repo, str(checkout)])
    ctx.run(["cmake", "-S", str(checkout), "-B", str(build), *cmake_args])
    ctx.run(["make", "-C", str(build)])
    ctx.run(["make", "-C", str(build), "install"], privileged=True)


BCC_PACKAGES = {
    Family.DEBIAN: ("bpfcc-tools", "linux-headers-{kernel}", "python3-bpfcc"),
    Family.RHEL: ("bcc-tools", "python3-bcc"),
}
BCC_BUILD_DEPS = {
    Family.DEBIAN: ("cmake", "python3-dev", "python3-pip"),
    Family.RHEL: ("cmake", "python3-devel", "python3-pip"),
}
BPFTRACE_BUILD_DEPS = {
    Family.DEBIAN: (
        "cmake", "libelf-dev", "zlib1g-dev", "libfl-dev", "systemtap-sdt-dev",
        "binutils-dev", "llvm-dev", "libclang-dev", "clang", "libpcap-dev",
    ),
    Family.RHEL: (
        "cmake", "elfutils-libelf-devel", "zlib-devel", "flex", "systemtap-sdt-devel",
        "binutils-devel", "llvm-devel", "clang-devel", "libpcap-devel",
    ),
}


def _install_bcc(ctx: InstallContext) -> None:
    family = ctx.platform.family
    try:
        ctx.install_packages(*(name.format(kernel=ctx.kernel) for name in BCC_PACKAGES[family]))
        return
    except CommandFailed:
        ctx.note("Package installation failed, building BCC from source", "warning")
    ctx.install_packages(*BCC_BUILD_DEPS[family])
    _build_with_cmake(ctx, "https://github.com/iovisor/bcc.git")


def _install_bpftrace(ctx: InstallContext) -> None:
    family = ctx.platform.family
    try:
        ctx.install_packages("bpftrace")
        return
    except CommandFailed:
        ctx.note("Package installation failed, building bpftrace from source", "warning")
    ctx.install_packages(*BPFTRACE_BUILD_DEPS[family])
    _build_with_cmake(ctx, "https://github.com/iovisor/bpftrace", "-DCMAKE_BUILD_TYPE=Release")


def _install_ebpf_examples(ctx: InstallContext) -> None:
    examples = ctx.config.examples_dir
    ctx.make_dirs(examples)

    bootstrap = examples / "libbpf-bootstrap"
    if not bootstrap.is_dir():
        ctx.run(
            ["git", "clone", "--recurse-submodules",
             "https://github.com/libbpf/libbpf-bootstrap.git", str(bootstrap)],
        )

    if not (examples / "bcc-examples").is_dir():
        checkout = ctx.tmp / "bcc"
        ctx.run(["git", "clone", "--depth", "1", "https://github.com/iovisor/bcc.git", str(checkout)])
        ctx.copy_tree(checkout / "examples", examples / "bcc-examples")
        ctx.copy_tree(checkout / "tools", examples / "bcc-tools")


# -- the catalog --

_TOOLS = (
    ToolSpec(
        name="docker",
        description="Docker engine",
        checks=(("docker", "--version"),),
        install={
            Family.DEBIAN: (
                Packages(("docker.io",)),
                Command(("usermod", "-aG", "docker", "{user}"), privileged=True),
            ),
            Family.RHEL: (
                Packages(("docker",)),
                Command(("usermod", "-aG", "docker", "{user}"), privileged=True),
            ),
            Family.MACOS: (Command(("brew", "install", "--cask", "docker"), package_manager=True),),
        },
        flag="d",
    ),
    ToolSpec(
        name="docker-compose",
        description="Docker Compose (plugin or standalone)",
        checks=(("docker", "compose", "version"), ("docker-compose", "version")),
        any_check=True,
        fallback=recipe(_install_compose),
        choices=("plugin", "standalone"),
        default_choice="plugin",
        flag="c",
    ),
    ToolSpec(
        name="minikube",
        description="Minikube local Kubernetes",
        checks=(("minikube", "version"),),
        install={Family.MACOS: packages("minikube")},
        fallback=recipe(_install_minikube),
        flag="k",
    ),
    ToolSpec(
        name="kubectl",
        description="Kubernetes command-line client",
        checks=(("kubectl", "version", "--client"),),
        install={Family.MACOS: packages("kubectl")},
        fallback=recipe(_install_kubectl),
        flag="p",
    ),
    ToolSpec(
        name="net-tools",
        description="net-tools (ifconfig, netstat)",
        checks=(("ifconfig", "-a"),),
        install={
            Family.DEBIAN: packages("net-tools"),
            Family.RHEL: packages("net-tools"),
        },
        flag="n",
    ),
    ToolSpec(
        name="build-tools",
        description="Compilers and toolchains (Go, Clang, LLVM, GCC)",
        checks=(("clang", "--version"), ("llvm-config", "--version")),
        install={
            Family.DEBIAN: packages("golang", "clang", "llvm", "gcc-multilib", "libbpf-dev"),
            Family.RHEL: packages("golang", "clang", "llvm", "gcc", "libbpf-devel"),
            Family.MACOS: packages("go", "llvm"),
        },
    ),
    ToolSpec(
        name="make",
        description="GNU make",
        checks=(("make", "--version"),),
        install={
            Family.DEBIAN: packages("make"),
            Family.RHEL: packages("make"),
            Family.MACOS: packages("make"),
        },
    ),
    ToolSpec(
        name="cmake",
        description="CMake build system",
        checks=(("cmake", "--version"),),
        install={
            Family.DEBIAN: packages("cmake"),
            Family.RHEL: packages("cmake"),
            Family.MACOS: packages("cmake"),
        },
    ),
    ToolSpec(
        name="bpftool",
        description="bpftool for inspecting BPF programs and maps",
        checks=(("bpftool", "version"),),
        install={
            Family.DEBIAN: recipe(_install_bpftool),
            Family.RHEL: recipe(_install_bpftool),
        },
        flag="b",
    ),
    ToolSpec(
        name="zsh",
        description="Zsh with Oh-My-Zsh and plugins",
        checks=(("zsh", "--version"), ("test", "-d", "{home}/.oh-my-zsh")),
        fallback=recipe(_install_zsh),
        choices=("syntax-highlighting", "both"),
        default_choice="both",
        flag="z",
    ),
    ToolSpec(
        name="go",
        description="Go toolchain (official tarball)",
        checks=(("go", "version"),),
        version_pattern=r"go version (go\S+)",
        versioned=True,
        fallback=recipe(_install_go),
        remove=recipe(_remove_go),
        path_hints=("{go_root}/bin",),
        flag="g",
    ),
    ToolSpec(
        name="python3",
        description="Python 3 (system package, pyenv, or source build)",
        checks=(("python3", "--version"),),
        version_pattern=r"Python (\d+\.\d+\.\d+)",
        versioned=True,
        replaces_in_place=True,
        fallback=recipe(_install_python),
        choices=("system", "pyenv", "source"),
        default_choice="system",
        path_hints=("{home}/.pyenv/shims", "{home}/.pyenv/bin"),
    ),
    ToolSpec(
        name="pip",
        description="pip for Python 3",
        checks=(("python3", "-m", "pip", "--version"),),
        version_pattern=r"pip (\d+(?:\.\d+)+)",
        versioned=True,
        replaces_in_place=True,
        fallback=recipe(_install_pip),
    ),
    ToolSpec(
        name="pip-upgrade",
        description="Upgrade pip to the latest release on PyPI",
        checks=(("python3", "-m", "pip", "--version"),),
        version_pattern=r"pip (\d+(?:\.\d+)+)",
        replaces_in_place=True,
        latest_url=PYPI_PIP_URL,
        latest_parser=parse_pypi_version,
        fallback=(Command(("python3", "-m", "pip", "install", "--upgrade", "pip")),),
    ),
    *(
        pip_collection(name, pkgs, description)
        for name, (description, pkgs) in PIP_COLLECTIONS.items()
    ),
    ToolSpec(
        name="venv",
        description="Python virtual environment (choice: environment name)",
        checks=(("test", "-x", "{venv_dir}/{choice}/bin/python"),),
        fallback=recipe(_create_venv),
        default_choice="python-env",
    ),
    ToolSpec(
        name="kernel-headers",
        description="Kernel headers and eBPF build dependencies",
        checks=(("test", "-d", "/lib/modules/{kernel}/build"),),
        install={
            Family.DEBIAN: packages(
                "linux-headers-{kernel}", "linux-tools-{kernel}", "linux-tools-common",
                "build-essential", "clang", "llvm", "libelf-dev", "libcap-dev", "libssl-dev",
            ),
            Family.RHEL: recipe(_install_kernel_headers_rhel),
        },
    ),
    ToolSpec(
        name="libbpf",
        description="libbpf development library",
        checks=(("test", "-e", "/usr/include/bpf/libbpf.h"),),
        install={
            Family.DEBIAN: packages("libbpf-dev"),
            Family.RHEL: recipe(_install_libbpf_source),
        },
    ),
    ToolSpec(
        name="bcc",
        description="BPF Compiler Collection and Python bindings",
        checks=(("python3", "-c", "import bcc"),),
        install={
            Family.DEBIAN: recipe(_install_bcc),
            Family.RHEL: recipe(_install_bcc),
        },
    ),
    ToolSpec(
        name="bpftrace",
        description="bpftrace high-level tracing language",
        checks=(("bpftrace", "--version"),),
        install={
            Family.DEBIAN: recipe(_install_bpftrace),
            Family.RHEL: recipe(_install_bpftrace),
        },
    ),
    ToolSpec(
        name="ebpf-examples",
        description="libbpf-bootstrap and BCC examples",
        checks=(
            ("test", "-d", "{examples_dir}/libbpf-bootstrap"),
            ("test", "-d", "{examples_dir}/bcc-examples"),
        ),
        fallback=recipe(_install_ebpf_examples),
    ),
)

TOOLS: dict[str, ToolSpec] = {tool.name: tool for tool in _TOOLS}

CATEGORIES: dict[str, tuple[str, ...]] = {
    "system-tools": (
        "docker", "docker-compose", "minikube", "kubectl", "net-tools",
        "build-tools", "make", "cmake", "bpftool", "zsh", "go",
    ),
    "python": ("python3", "pip", "pip-upgrade", "data-science", "web-dev", "dev-tools", "venv"),
    "ebpf": ("kernel-headers", "libbpf", "bpftool", "bcc", "bpftrace", "ebpf-examples"),
}

STATUS_TOOLS = (
    "docker", "docker-compose", "kubectl", "minikube", "python3", "pip", "go",
    "make", "cmake", "bpftool", "bpftrace",
)

FLAGS: dict[str, str] = {tool.flag: tool.name for tool in _TOOLS if tool.flag}


def tool_from_config(name: str, data: Mapping[str, Any]) -> ToolSpec:
    """Build a ToolSpec from a ``tools:`` entry of the YAML configuration."""
    checks = data.get("check")
    if not checks:
        msg = f"Tool {name!r} must define a presence check"
        raise ValueError(msg)
    if isinstance(checks[0], str):
        checks = [checks]

    privileged = bool(data.get("privileged", True))

    def commands(entries: Any) -> tuple[Command, ...]:
        if entries and isinstance(entries[0], str):
            entries = [entries]
        return tuple(Command(tuple(argv), privileged=privileged) for argv in entries or ())

    install = {}
    fallback: tuple[Step, ...] = ()
    for key, entries in (data.get("install") or {}).items():
        if key == "any":
            fallback = commands(entries)
        else:
            install[Family(key)] = commands(entries)

    return ToolSpec(
        name=name,
        description=data.get("description", "custom tool"),
        checks=tuple(tuple(check) for check in checks),
        install=install,
        fallback=fallback,
        remove=commands(data.get("remove")),
        version_pattern=data.get("version_pattern"),
        versioned=bool(data.get("remove")) or bool(data.get("versioned", False)),
        replaces_in_place=bool(data.get("replaces_in_place", False)),
    )


def build_catalog(custom: Mapping[str, Mapping[str, Any]] | None = None) -> dict[str, ToolSpec]:
    """The built-in tools plus any declared in the configuration."""
    catalog = dict(TOOLS)
    for name, data in (custom or {}).items():
        catalog[name] = tool_from_config(name, data)
    return catalog
