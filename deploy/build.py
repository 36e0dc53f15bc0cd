import shutil
import subprocess
import tomllib
from pathlib import Path


def build():
    build_dir = Path("build")

    # Clean
    if build_dir.exists():
        shutil.rmtree(build_dir)
    build_dir.mkdir()

    with open("pyproject.toml", "rb") as f:
        dependencies = tomllib.load(f)["project"]["dependencies"]

    # Install deps to build folder
    subprocess.run([
        "pip", "install", *dependencies,
        "-t", str(build_dir),
        "--platform", "manylinux2014_x86_64",
        "--only-binary=:all:"
    ], check=True)

    # Copy source
    shutil.copytree("src/word_verifier", build_dir / "word_verifier")

    # Both Lambdas ship the same archive with different handlers:
    #   word_verifier.api_handler.lambda_handler
    #   word_verifier.worker_handler.lambda_handler
    shutil.make_archive("lambda_function", "zip", build_dir)


if __name__ == "__main__":
    build()
