# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard mixins."""

from flakeguard.mixins.mixin_github_http_transport import MixinGitHubHttpTransport

__all__: list[str] = ["MixinGitHubHttpTransport"]
