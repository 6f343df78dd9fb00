import logging
import pathlib
import sys

from typing import Optional
from typing_extensions import Annotated

import typer.core

typer.core.rich = None

import typer  # noqa: E402

from .. import __version__  # noqa: E402
from .. import exceptions, watcher  # noqa: E402
from ..config import WatchConfig, default_kubeconfig  # noqa: E402
from ..resources import ResourceKind  # noqa: E402


app = typer.Typer(
    add_completion=False,
    context_settings={'help_option_names': ['-h', '--help']},
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f'kubewatch {__version__}')
        raise typer.Exit()


def _setup_logging(verbose, debug):
    logging.basicConfig(
        level=logging.ERROR,
        format='%(levelname)s: %(module)s: %(message)s',
        stream=sys.stderr,
    )
    log = logging.getLogger('kubewatch')
    log_level = logging.ERROR
    if verbose:
        log_level = logging.INFO
    elif debug:
        log_level = logging.DEBUG
    log.setLevel(log_level)
    return log


@app.command()
def main(
    kubeconfig: Annotated[
        Optional[pathlib.Path],
        typer.Option(
            exists=True,
            help='Absolute path to the kubeconfig file. '
            'Defaults to ~/.kube/config if present, otherwise the in-cluster config is used.',
        ),
    ] = None,
    resource: Annotated[
        ResourceKind,
        typer.Option(help='Set the resource type to be watched.'),
    ] = ResourceKind.SERVICES,
    namespace: Annotated[
        Optional[str],
        typer.Option(help='Set the namespace to be watched. Defaults to all namespaces.'),
    ] = None,
    verbose: Annotated[bool, typer.Option('--verbose', '-v')] = False,
    debug: Annotated[bool, typer.Option('--debug', '-d')] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            '--version',
            callback=_version_callback,
            is_eager=True,
            help='Show the version and exit.',
        ),
    ] = None,
) -> None:
    """
    Watches Kubernetes resources via its API.
    """
    log = _setup_logging(verbose, debug)

    if kubeconfig is None:
        kubeconfig = default_kubeconfig()

    config = WatchConfig(
        resource=resource,
        namespace=namespace,
        kubeconfig=kubeconfig,
    )
    log.debug('config: %r', config)

    try:
        watcher.run(config)
    except (exceptions.Error, exceptions.FatalError, ExceptionGroup) as e:
        errors = list(exceptions.iterate_errors(e))
        fatal = (exceptions.Error, exceptions.FatalError)
        if not all(isinstance(error, fatal) for error in errors):
            raise
        for error in errors:
            typer.echo(f'kubewatch: error: {error}', err=True)
        raise typer.Exit(code=1)


if __name__ == '__main__':
    app()
