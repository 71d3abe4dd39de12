"""docker wrapper"""

from pathlib import Path

from localdev.engine.runner import CommandResult, CommandRunner


class Docker:
    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def daemon_running(self) -> bool:
        return self.runner.run(["docker", "info"]).ok

    def build(self, tag: str, context: Path) -> CommandResult:
        return self.runner.run(
            ["docker", "build", "-t", tag, str(context)],
            check=True, capture=False, action="Building Docker image",
        )

    def image_exists(self, image: str) -> bool:
        """True when ``repository:tag`` is present locally"""
        repository, _, tag = image.partition(":")
        result = self.runner.run(
            ["docker", "images", "--format", "{{.Repository}}:{{.Tag}}", repository]
        )
        if not result.ok:
            return False
        wanted = f"{repository}:{tag or 'latest'}"
        return wanted in result.stdout.split()

    def remove_image(self, image: str) -> bool:
        return self.runner.run(["docker", "rmi", image]).ok

    def prune_images(self) -> bool:
        return self.runner.run(["docker", "image", "prune", "-f"], capture=False).ok

    def prune_volumes(self) -> bool:
        return self.runner.run(["docker", "volume", "prune", "-f"], capture=False).ok
