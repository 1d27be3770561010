"""
Configuration templates written by the reconciler.

Block templates are bodies only; the reconciler wraps them in the
begin/end markers of their managed file.
"""

from __future__ import annotations

BREW_SHELLENV = """\
# Homebrew
{shellenv}
"""

ZSHRC_PLUGINS = """\
# zinit (plugin manager)
ZINIT_HOME="${ZINIT_HOME:-$HOME/.local/share/zinit/zinit.git}"
if [[ -f "$ZINIT_HOME/zinit.zsh" ]]; then
  source "$ZINIT_HOME/zinit.zsh"
  zinit light zsh-users/zsh-autosuggestions
  zinit light zsh-users/zsh-syntax-highlighting
  zinit light Aloxaf/fzf-tab
fi

# Starship prompt
if command -v starship >/dev/null 2>&1; then
  eval "$(starship init zsh)"
fi

# direnv (per-project env)
if command -v direnv >/dev/null 2>&1; then
  eval "$(direnv hook zsh)"
fi
"""

ZSHRC_ALIASES_SOURCE = """\
# Custom aliases
if [[ -f "${XDG_CONFIG_HOME:-$HOME/.config}/zsh/aliases.zsh" ]]; then
  source "${XDG_CONFIG_HOME:-$HOME/.config}/zsh/aliases.zsh"
fi
"""

GIT_ALIASES = """\
alias gm='git merge'
alias gs='git stash'
alias gsc='git stash clear'
alias gsm='git stash -m'
alias gsa='git stash apply'
alias gsl='git stash list'

alias sgc='skip=1 git commit -m'
alias gc='git commit -m'
alias gcam='git commit --amend -m'
alias sgcam='skip=1 git commit --amend -m'
alias gcan='git commit --amend --no-edit'
alias sgcan='skip=1 git commit --amend --no-edit'

alias ga='git add'
alias gaa='git add .'
alias gst='git status'
alias gl='git pull'
alias gp='git push'
alias gpf='git push --force'
alias gco='git checkout'
alias gcob='git checkout -b'
alias gcoc='check=1 git checkout'
alias gb='git branch'
alias glog='git log --oneline --graph --decorate'
alias gd='git diff'
alias gf='git fetch'
alias grs='git reset'
alias grh='git reset --hard'
alias grst='git restore'
alias grsta='git restore .'
alias grb='git rebase -i'
alias glat='git fetch && git pull'

# eza aliases (only if installed)
if command -v eza >/dev/null 2>&1; then
  alias l='eza -lah --git'
  alias ll='eza -lah --git'
  alias la='eza -a'
  alias lt='eza --tree --level=2'
fi
"""

TMUX_CONF = """\
# Managed by devbox. A copy of the pre-bootstrap file is kept in ~/.tmux.conf.bak.

set -g default-terminal "tmux-256color"
set -ag terminal-overrides ",xterm-256color:RGB"

set -g mouse on
set -g history-limit 50000
set -g base-index 1
setw -g pane-base-index 1
set -g renumber-windows on
set -sg escape-time 10
set -g focus-events on

setw -g mode-keys vi
bind -T copy-mode-vi v send -X begin-selection
bind -T copy-mode-vi y send -X copy-selection-and-cancel

bind | split-window -h -c "#{pane_current_path}"
bind - split-window -v -c "#{pane_current_path}"
bind c new-window -c "#{pane_current_path}"

bind h select-pane -L
bind j select-pane -D
bind k select-pane -U
bind l select-pane -R

bind r source-file ~/.tmux.conf \\; display "tmux.conf reloaded"
"""
