import setuptools
from pathlib import Path

ROOT = Path(__file__).parent


def read_requirements(filename: str = "requirements.txt") -> list[str]:
    req_path = ROOT / filename
    if not req_path.exists():
        return []
    reqs: list[str] = []
    for line in req_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        reqs.append(line)
    return reqs


long_description = (ROOT / "README_PYPI.md").read_text(encoding="utf-8")

setuptools.setup(
    name="tapeflow",
    version="0.1.0",
    description=(
        "A tensor engine with reverse-mode automatic differentiation, "
        "pluggable CPU/CUDA backends and scope-based memory management."
    ),
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
    ],
    package_dir={"": "src"},
    packages=setuptools.find_packages(where="src", include=["tapeflow", "tapeflow.*"]),
    python_requires=">=3.10",
    install_requires=read_requirements(),
    extras_require={
        "cuda": ["cupy-cuda12x"],
        "test": ["pytest"],
    },
    zip_safe=False,
)
