from setuptools import setup

VERSION = "0.4"

setup(
    name="tscollect",
    version=VERSION,
    license="GPL v3",
    description=("Collector scheduling and metric normalization for telemetry agents"),
    long_description=(""),
    classifiers=[
        "Intended Audience :: System Administrators",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: GNU General Public License v3 (GPLv3)",
        "Operating System :: POSIX",
        "Topic :: System :: Monitoring",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Development Status :: 4 - Beta",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords=["metrics", "telemetry", "collector", "opentsdb", "memcached"],
    zip_safe=False,
    platforms="any",
    python_requires=">=3.11",
    packages=[
        "tscollect", "tscollect.collectors", "tscollect.metrics",
        "tscollect.utils"
    ],
    install_requires=["async_timeout>=4.0.3"],
    extras_require={
        "test": ["pytest>=7.4", "pytest-asyncio>=0.23", "pytest-codspeed>=2.2"],
    },
    include_package_data=True)
