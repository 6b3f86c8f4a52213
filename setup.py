"""
Setup script for the DNS ID3 Intrusion Detection System.
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text() if readme_file.exists() else ""

setup(
    name="dns-id3-ids",
    version="0.1.0",
    description="ID3 Decision Tree Intrusion Detection for DNS Traffic",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="DNS IDS Team",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "pandas>=1.3.0",
        "numpy>=1.21.0",
        "scikit-learn>=1.0.0",
        "scapy>=2.4.5",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "black>=22.0.0",
            "flake8>=5.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "dns-ids=dns_ids.cli:main",
        ],
    },
)
