"""refscope - C# symbol resolution and safety-checked refactoring."""

__version__ = "0.1.0"
