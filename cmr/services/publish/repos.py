"""Registration of auxiliary chart repositories for dependency resolution.

Registration is best effort: repositories added before a failing one stay
registered with helm.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

from cmr.core.request import RepositoryConfig
from cmr.core.result import Err, Ok, Result
from cmr.core.settings import Settings
from cmr.output.console import ConsoleProtocol
from cmr.platform.files import scoped_tempdir, write_private
from cmr.platform.process import ProcessRunner
from cmr.services.errors import RepoAddFailed


def build_repo_add_command(
    *,
    helm: str,
    name: str,
    repo: RepositoryConfig,
    tls_dir: Path,
) -> list[str]:
    """Build ``helm repo add``; TLS material is written into ``tls_dir``."""
    cmd = [helm, "repo", "add"]

    credentials = repo.basic_auth
    if credentials is not None:
        cmd += ["--username", credentials[0], "--password", credentials[1]]

    if repo.tls_ca_cert:
        cmd += ["--ca-file", str(write_private(tls_dir / "ca.pem", repo.tls_ca_cert))]

    client_cert = repo.client_cert
    if client_cert is not None:
        cert, key = client_cert
        cmd += ["--cert-file", str(write_private(tls_dir / "cert.pem", cert))]
        cmd += ["--key-file", str(write_private(tls_dir / "key.pem", key))]

    cmd += [name, repo.server_url]
    return cmd


def register_repos(
    *,
    runner: ProcessRunner,
    settings: Settings,
    console: ConsoleProtocol,
    repos: Mapping[str, RepositoryConfig],
    cwd: Path,
) -> Result[None, RepoAddFailed]:
    if not repos:
        return Ok(None)

    console.header("Processing chart Helm repo dependencies")
    for name, repo in repos.items():
        with scoped_tempdir("cmr-repo-tls-") as tls_dir:
            cmd = build_repo_add_command(helm=settings.helm, name=name, repo=repo, tls_dir=tls_dir)
            console.print(f'Performing "helm repo add {name} {repo.server_url}"...')
            result = runner.run(cmd, cwd=cwd)
        if isinstance(result, Err):
            return Err(RepoAddFailed(name=name, server_url=repo.server_url, stderr=result.error.stderr))
    return Ok(None)
