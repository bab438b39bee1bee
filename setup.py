from setuptools import setup, find_packages

setup(
    name="traffic-analytics-adapter",
    version="0.1.0",
    packages=find_packages(exclude=['tests', 'tests.*']),
    install_requires=[
        'pandas>=2.0.0',
        'numpy>=1.24.0',
        'requests>=2.28.0',
        'python-dotenv>=1.0.0',
        'flask>=2.3.0',
        'prettytable>=3.0.0',  # For formatted table output
        'concurrent-log-handler>=0.9.20',  # For better logging with concurrency
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'traffic-adapter=traffic_adapter.main:main',
        ],
    },
    python_requires='>=3.9',
    author="Erfi Anugrah",
    author_email="",
    description="Unified traffic analytics endpoint over Cloudflare GraphQL and edge analytics APIs",
    long_description=open('README.md').read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Internet :: WWW/HTTP",
        "Topic :: System :: Monitoring",
    ],
)
