"""Setup script for the Calendar Enhancer streaming iCalendar proxy."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

requirements = [
    "aiohttp>=3.9.0",
    "httpx>=0.25.0",
    "pydantic>=2.0.0",
    "colorlog>=6.7.0",
]

test_requirements = [
    "pytest>=7.4.0",
    "pytest-asyncio>=0.23.0",
    "pytest-timeout>=2.1.0",
    "icalendar>=5.0.0",
]

setup(
    name="calendar_enhancer",
    version="0.1.0",
    description="Streaming iCalendar proxy that anonymizes events and geocodes campus locations",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Calendar Enhancer Team",
    # Package configuration
    packages=find_packages(include=["calendar_enhancer", "calendar_enhancer.*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Topic :: Internet :: Proxy Servers",
        "Framework :: AsyncIO",
    ],
    keywords="calendar ics icalendar proxy privacy geocoding async",
    # Entry points
    entry_points={
        "console_scripts": [
            "calendar_enhancer=calendar_enhancer.__main__:main",
        ],
    },
    zip_safe=False,
    platforms=["linux", "macos"],
)
