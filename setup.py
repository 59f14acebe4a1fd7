from setuptools import find_packages, setup

package_list = find_packages(
  include=[
    "vcslens",
    "vcslens.*",
  ]
)

setup(
  name="vcslens",
  version="0.1.0",
  description="Structured per-file diffs and commit history graphs from git output",
  python_requires=">=3.11",
  packages=package_list,
  include_package_data=True,
  install_requires=[
    "pydantic>=2",
    "python-dotenv",
    "unidiff>=0.7.4",
    "GitPython",
  ],
  extras_require={
    "dev": ["pytest", "pytest-cov"],
  },
  entry_points={
    "console_scripts": ["vcslens=vcslens.main:main"],
  },
)
