"""
app.services.naming
~~~~~~~~~~~~~~~~~~~

房间 ID 生成：三个单词组成的 slug，例如 ``brave-quiet-otter``。

不检查唯一性（由 ``RoomRegistry`` 负责碰撞检测）。
"""
from __future__ import annotations

import random

_ADJECTIVES: tuple[str, ...] = (
    "amber", "ancient", "bold", "brave", "breezy", "bright", "calm", "clever",
    "cosmic", "crimson", "curious", "dusty", "eager", "early", "fancy", "fierce",
    "gentle", "giant", "golden", "happy", "hidden", "hollow", "icy", "jolly",
    "kind", "lively", "lucky", "mellow", "misty", "noble", "odd", "plain",
    "proud", "quick", "quiet", "rapid", "rusty", "shiny", "silent", "silver",
    "sleepy", "smooth", "stormy", "sunny", "swift", "tame", "tiny", "vast",
    "velvet", "wild", "windy", "wise", "young", "zesty",
)

_NOUNS: tuple[str, ...] = (
    "anchor", "badger", "beacon", "bison", "brook", "canyon", "castle", "cedar",
    "comet", "coral", "crane", "delta", "desert", "falcon", "fjord", "forest",
    "fox", "galaxy", "glacier", "harbor", "hawk", "heron", "island", "jaguar",
    "lagoon", "lantern", "meadow", "mesa", "moose", "nebula", "oasis", "orchard",
    "otter", "owl", "panda", "pebble", "pine", "prairie", "quarry", "raven",
    "reef", "river", "sparrow", "summit", "thicket", "tiger", "tundra", "valley",
    "walrus", "willow", "wolf", "yak", "zebra",
)


def generate_room_slug(words: int = 3) -> str:
    """生成 ``形容词-...-名词`` 形式的房间 ID。

    Args:
        words: 单词总数（至少 2 个），最后一个是名词。

    Returns:
        由小写单词和连字符组成的 slug。
    """
    if words < 2:
        raise ValueError("a room slug needs at least two words")
    parts = [random.choice(_ADJECTIVES) for _ in range(words - 1)]
    parts.append(random.choice(_NOUNS))
    return "-".join(parts)
