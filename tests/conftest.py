"""Pytest fixtures for refscope tests."""

import tempfile
from pathlib import Path

import pytest

from refscope.symbol_index import SymbolIndex

PLAYER_CS = """\
using UnityEngine;

public class Player : MonoBehaviour
{
    [SerializeField] private float speed = 5f;
    public int health;

    void Update()
    {
        Move();
        if (health <= 0)
        {
            Die();
        }
    }

    void Move()
    {
        transform.Translate(Vector3.forward * speed);
    }

    public void Die()
    {
        Invoke("Respawn", 2f);
    }

    void Respawn()
    {
        health = 100;
    }
}
"""

ENEMY_CS = """\
using UnityEngine;

public class Enemy : MonoBehaviour
{
    public Player target;

    void Start()
    {
        Attack();
    }

    void Attack()
    {
        target.Die();
    }
}
"""

SCENARIO_CS = "class Player { void Update() { Move(); } void Move() { } }"

# Y is declared on the line that closes X
STACKED_CS = """\
class Stacked {
  void X() {
  } void Y() {
    Z();
  }
  void Z() {
  }
}
"""


def write_file(root: Path, rel_path: str, content: str, newline: str = "\n") -> Path:
    """Write a source file with exact line endings."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content.replace("\n", newline).encode("utf-8"))
    return path


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def unity_project(temp_dir):
    """A small project with two MonoBehaviours that call each other."""
    root = temp_dir / "project"
    write_file(root, "Assets/Scripts/Player.cs", PLAYER_CS)
    write_file(root, "Assets/Scripts/Enemy.cs", ENEMY_CS)
    write_file(root, "Assets/Scripts/README.txt", "Player notes, not code.\n")
    return root


@pytest.fixture
def scenario_project(temp_dir):
    """A project with the single-line Player class."""
    root = temp_dir / "scenario"
    write_file(root, "Player.cs", SCENARIO_CS)
    return root


@pytest.fixture
def unity_index(unity_project):
    index = SymbolIndex()
    index.build_symbol_table(unity_project)
    return index


@pytest.fixture
def scenario_index(scenario_project):
    index = SymbolIndex()
    index.build_symbol_table(scenario_project)
    return index
