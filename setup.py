from setuptools import setup, find_packages

setup(
    name="narrated-video-pipeline",
    version="0.1.0",
    description="Topic-to-video pipeline: LLM script, narration, stock footage and burned-in subtitles",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.27.0",
        "httpx>=0.27.0",
        "openai>=1.30.0",
        "edge-tts>=6.1.9",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "python-dotenv>=1.0.0",
        "structlog>=23.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "hypothesis>=6.82.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.5.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "nvp=narrated_video_pipeline.cli:main",
        ],
    },
)
