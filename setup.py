"""Setup script for OneDrive Uploader."""

from setuptools import setup, find_packages
from pathlib import Path

# Read README for long description
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

# Read requirements
requirements_path = Path(__file__).parent / "src" / "requirements.txt"
requirements = []
if requirements_path.exists():
    with open(requirements_path, 'r', encoding='utf-8') as f:
        requirements = [line.strip() for line in f if line.strip() and not line.startswith('#')]

setup(
    name="onedrive-uploader",
    version="1.0.0",
    author="OneDrive Uploader",
    description="Upload and periodically back up local files to OneDrive",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/onedrive-uploader",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: System Administrators",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: System :: Archiving :: Backup",
    ],
    python_requires=">=3.9",
    install_requires=requirements,
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.5.0",
        ],
    },
    include_package_data=True,
    package_data={
        "onedrive_uploader": ["py.typed"],
    },
    zip_safe=False,
    keywords="onedrive backup upload cloud storage microsoft graph device flow",
    project_urls={
        "Bug Reports": "https://github.com/yourusername/onedrive-uploader/issues",
        "Source": "https://github.com/yourusername/onedrive-uploader",
    },
)
