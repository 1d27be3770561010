"""
Static catalogs: packages, managed files and health checks.

The single source of truth for what a bootstrap installs and writes.
devbox.yml can add to these lists or skip entries by name, but never
edits them in place.
"""

from __future__ import annotations

from devbox.core.data import templates
from devbox.core.models.config import BootstrapConfig
from devbox.core.models.facts import ManagerId
from devbox.core.models.health import ToolCheck
from devbox.core.models.managed_file import ManagedFile, WriteMode
from devbox.core.models.package import PackageSpec

BREW = ManagerId.BREW
PACMAN = ManagerId.PACMAN
APT = ManagerId.APT


def _pkg(
    logical: str,
    brew: str | None = None,
    pacman: str | None = None,
    apt: str | None = None,
    *,
    same: bool = False,
    binary: str | None = None,
    required: bool = True,
) -> PackageSpec:
    if same:
        brew = pacman = apt = logical
    names = {m: n for m, n in ((BREW, brew), (PACMAN, pacman), (APT, apt)) if n}
    return PackageSpec(
        logical_name=logical,
        per_manager_names=names,
        binary=binary,
        required=required,
    )


# ── Packages ────────────────────────────────────────────────────

# Build prerequisites. macOS gets these from the Xcode command line tools.
PREREQ_PACKAGES: list[PackageSpec] = [
    _pkg("build-essential", pacman="base-devel", apt="build-essential", required=False),
    _pkg("curl", same=True),
    _pkg("ca-certificates", same=True, required=False),
    _pkg("gnupg", same=True, binary="gpg", required=False),
    _pkg("unzip", same=True, required=False),
    _pkg("zip", same=True, required=False),
    _pkg("pkg-config", brew="pkg-config", pacman="pkgconf", apt="pkg-config", required=False),
]

TOOL_PACKAGES: list[PackageSpec] = [
    _pkg("neovim", same=True, binary="nvim"),
    _pkg("git", same=True),
    _pkg("tmux", same=True),
    _pkg("zsh", same=True),
    _pkg("ripgrep", same=True, binary="rg"),
    _pkg("fd", brew="fd", pacman="fd", apt="fd-find", binary="fd"),
    _pkg("fzf", same=True),
    _pkg("bat", same=True, required=False),
    _pkg("jq", same=True),
    _pkg("tree", same=True, required=False),
    _pkg("htop", same=True, required=False),
    _pkg("direnv", same=True, required=False),
    _pkg("starship", brew="starship", pacman="starship", required=False),
    _pkg("git-delta", same=True, binary="delta", required=False),
    _pkg("lazygit", brew="lazygit", pacman="lazygit", required=False),
    _pkg("eza", same=True, required=False),
]

# Gated by install_node
NODE_PACKAGES: list[PackageSpec] = [
    _pkg("node", brew="node", pacman="nodejs", apt="nodejs", binary="node"),
    # Homebrew's node formula ships npm
    _pkg("npm", brew="node", pacman="npm", apt="npm"),
]


def select_packages(config: BootstrapConfig) -> list[PackageSpec]:
    """Packages for this run, in install order.

    Entries from devbox.yml replace catalog entries with the same
    logical name and are otherwise appended.
    """
    catalog = PREREQ_PACKAGES + TOOL_PACKAGES
    if config.install_node:
        catalog = catalog + NODE_PACKAGES

    overrides = {p.logical_name: p for p in config.packages}
    selected: list[PackageSpec] = []
    for spec in catalog:
        selected.append(overrides.pop(spec.logical_name, spec))
    selected.extend(overrides.values())

    skip = set(config.skip_packages)
    return [p for p in selected if p.logical_name not in skip]


# ── Managed files ───────────────────────────────────────────────


def managed_files(config: BootstrapConfig, brew_shellenv: str | None = None) -> list[ManagedFile]:
    """Managed files for this run, in reconcile order.

    Args:
        config: Run configuration (paths and toggles).
        brew_shellenv: The ``eval "$(brew shellenv)"`` line when Homebrew
            is the resolved manager. The shellenv blocks are only declared
            when it is given.
    """
    home = config.home
    files: list[ManagedFile] = []

    if brew_shellenv:
        body = templates.BREW_SHELLENV.format(shellenv=brew_shellenv)
        for name, path in (
            ("zprofile-brew", home / ".zprofile"),
            ("profile-brew", home / ".profile"),
            ("zshrc-brew", home / ".zshrc"),
        ):
            files.append(
                ManagedFile(
                    name=name,
                    path=str(path),
                    desired_block=body,
                    requires_manager=BREW,
                    satisfied_by=brew_shellenv,
                )
            )

    files.extend(
        [
            ManagedFile(
                name="zshrc-plugins",
                path=str(home / ".zshrc"),
                desired_block=templates.ZSHRC_PLUGINS,
            ),
            ManagedFile(
                name="zshrc-aliases",
                path=str(home / ".zshrc"),
                desired_block=templates.ZSHRC_ALIASES_SOURCE,
            ),
            ManagedFile(
                name="git-aliases",
                path=str(config.config_home / "zsh" / "aliases.zsh"),
                desired_block=templates.GIT_ALIASES,
            ),
            ManagedFile(
                name="tmux-conf",
                path=str(home / ".tmux.conf"),
                desired_block=templates.TMUX_CONF,
                mode=WriteMode.FULL_OVERWRITE,
                overwrite=config.overwrite_tmux_conf,
            ),
        ]
    )

    overrides = {f.name: f for f in config.files}
    merged = [overrides.pop(f.name, f) for f in files]
    merged.extend(overrides.values())

    skip = set(config.skip_files)
    return [f for f in merged if f.name not in skip]


# ── Health checks ───────────────────────────────────────────────

HEALTH_CHECKS: list[ToolCheck] = [
    ToolCheck.cmd("nvim", "Core tools"),
    ToolCheck.cmd("git", "Core tools"),
    ToolCheck.cmd("tmux", "Core tools"),
    ToolCheck.cmd("rg", "Core tools"),
    ToolCheck.cmd("fd", "Core tools"),
    ToolCheck.cmd("fzf", "Core tools"),
    ToolCheck.cmd("node", "Core tools"),
    ToolCheck.cmd("npm", "Core tools"),
    ToolCheck.cmd("php", "Language runtimes"),
    ToolCheck.cmd("go", "Language runtimes"),
    ToolCheck.cmd("stylua", "Neovim formatters/linters"),
    ToolCheck.cmd("luacheck", "Neovim formatters/linters"),
    ToolCheck.cmd("phpcs", "Neovim formatters/linters"),
    ToolCheck.any_of("php formatter", ["pint", "php-cs-fixer"], "Neovim formatters/linters"),
    ToolCheck.any_of("js formatter", ["prettierd", "prettier"], "Neovim formatters/linters"),
    ToolCheck.cmd("eslint_d", "Neovim formatters/linters"),
    ToolCheck.cmd("goimports", "Neovim formatters/linters"),
    ToolCheck.cmd("gofumpt", "Neovim formatters/linters"),
    ToolCheck.cmd("rustfmt", "Neovim formatters/linters", required=False),
    ToolCheck(
        label="php debug adapter script",
        group="DAP (PHP)",
        path="~/.local/share/nvim/vscode-php-debug/out/phpDebug.js",
        required=False,
    ),
]

_COMMON_HINTS = [
    "npm install -g @fsouza/prettierd prettier eslint_d",
    "go install golang.org/x/tools/cmd/goimports@latest",
    "go install mvdan.cc/gofumpt@latest",
    "composer global require --dev laravel/pint",
]

REMEDIATION_HINTS: dict[ManagerId | None, list[str]] = {
    BREW: [
        "brew install stylua luacheck php-code-sniffer php-cs-fixer go rust",
        *_COMMON_HINTS,
    ],
    PACMAN: [
        "sudo pacman -S --needed stylua luacheck php php-codesniffer php-cs-fixer go rustup",
        "rustup default stable && rustup component add rustfmt",
        *_COMMON_HINTS,
    ],
    APT: [
        "sudo apt install -y php php-cli composer golang rustc cargo stylua luacheck "
        "php-codesniffer php-cs-fixer rustfmt",
        *_COMMON_HINTS,
    ],
    None: ["Install required commands manually, then re-run the healthcheck."],
}


def probe_binaries(config: BootstrapConfig | None = None) -> set[str]:
    """Every command name the prober should look for."""
    specs = PREREQ_PACKAGES + TOOL_PACKAGES + NODE_PACKAGES
    if config is not None:
        specs = specs + list(config.packages)
    names = {spec.command for spec in specs}
    for check in HEALTH_CHECKS:
        names.update(check.commands)
    return names
