"""Built image artifacts."""

from dataclasses import dataclass

from kudeploy.core.errors import ConfigError


@dataclass(frozen=True)
class Artifact:
    """An image produced by a build.

    Attributes:
        image_name: Image name as written in manifests, without tag or digest
                    (e.g. ``"gcr.io/proj/app"``)
        tag: Resolved reference to deploy, a tag or digest form
             (e.g. ``"gcr.io/proj/app@sha256:abcd"``)
    """
    image_name: str
    tag: str

    @classmethod
    def parse(cls, value: str) -> "Artifact":
        """Parse ``NAME=TAG`` as given on the command line.

        Example:
            >>> Artifact.parse("app=app@sha256:abcd")
            Artifact(image_name='app', tag='app@sha256:abcd')
        """
        name, sep, tag = value.partition("=")
        if not sep or not name or not tag:
            raise ConfigError(f"image must be NAME=TAG, got {value!r}")
        return cls(image_name=name, tag=tag)
