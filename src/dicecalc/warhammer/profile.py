from dataclasses import dataclass, field
from typing import List, Union

from dicecalc.dice import Value, Constant, D3, D6, NONE, add
from dicecalc.errors import TooManyAttacks, TooManyAdditionalHits

MAX_ATTACKS = 1000
MAX_ADDITIONAL_HITS = 100

# Sentinels for "the defender has no such save"
NO_INVULNERABLE_SAVE = Constant(7)
NO_FEEL_NO_PAIN = 7


# Reroll rules

@dataclass(frozen=True)
class NoReroll:
    pass

@dataclass(frozen=True)
class RerollOnes:
    """Reroll failed natural 1s"""

@dataclass(frozen=True)
class RerollSingle:
    """Reroll one failed die per sequence"""

@dataclass(frozen=True)
class RerollAllFails:
    pass

RerollRule = Union[NoReroll, RerollOnes, RerollSingle, RerollAllFails]


@dataclass
class RerollState:
    """Single-use reroll flag, owned by one phase of one attack sequence"""
    used: bool = False


# Auto hit / auto wound

@dataclass(frozen=True)
class NoAutoHit:
    pass

@dataclass(frozen=True)
class AlwaysHit:
    """Every attack hits without rolling"""

AutoHitRule = Union[NoAutoHit, AlwaysHit]


@dataclass(frozen=True)
class NoAutoWound:
    pass

@dataclass(frozen=True)
class AutoWoundOnRoll:
    """Hit rolls of on_result or more skip the wound roll"""
    on_result: int

AutoWoundRule = Union[NoAutoWound, AutoWoundOnRoll]


# Additional hits

@dataclass(frozen=True)
class NoAdditionalHits:
    pass

@dataclass(frozen=True)
class AdditionalHitsOnRoll:
    on_result: int
    additional_hits: Value

    def __post_init__(self):
        most = self.additional_hits.max_value()
        if most > MAX_ADDITIONAL_HITS:
            raise TooManyAdditionalHits(MAX_ADDITIONAL_HITS, most)

AdditionalHitsRule = Union[NoAdditionalHits, AdditionalHitsOnRoll]


# Characteristic modifiers, shared by damage, strength and penetration

@dataclass(frozen=True)
class NoModification:
    pass

@dataclass(frozen=True)
class AddOnRoll:
    """Add value to the characteristic on rolls of on_result or more"""
    on_result: int
    value: Value

@dataclass(frozen=True)
class ReplaceOnRoll:
    """Replace the characteristic with value on rolls of on_result or more"""
    on_result: int
    value: Value

CharacteristicRule = Union[NoModification, AddOnRoll, ReplaceOnRoll]


# Mortal wounds

@dataclass(frozen=True)
class NoMortalWounds:
    pass

@dataclass(frozen=True)
class MortalWoundsOnRoll:
    on_result: int
    mortal_wounds: Value

MortalWoundsRule = Union[NoMortalWounds, MortalWoundsOnRoll]


def can_reroll(rule: RerollRule, result: int, state: RerollState) -> bool:
    """Decide whether a failed roll is rerolled.

    RerollSingle spends the shared flag on the first failure it is asked
    about, whatever the die showed.
    """
    if isinstance(rule, NoReroll):
        return False
    if isinstance(rule, RerollAllFails):
        return True
    if isinstance(rule, RerollOnes):
        return result == 1
    if isinstance(rule, RerollSingle):
        if state.used:
            return False
        state.used = True
        return True
    raise TypeError(f"Unknown reroll rule {rule!r}")


def modify_characteristic(rule: CharacteristicRule, result: int, characteristic: Value) -> Value:
    if isinstance(rule, NoModification):
        return characteristic
    if isinstance(rule, (AddOnRoll, ReplaceOnRoll)):
        if result < rule.on_result:
            return characteristic
        if isinstance(rule, AddOnRoll):
            return add(characteristic, rule.value)
        return rule.value
    raise TypeError(f"Unknown characteristic rule {rule!r}")


def get_mortal_wounds(rule: MortalWoundsRule, result: int) -> Value:
    if isinstance(rule, NoMortalWounds):
        return NONE
    if isinstance(rule, MortalWoundsOnRoll):
        return rule.mortal_wounds if result >= rule.on_result else NONE
    raise TypeError(f"Unknown mortal wounds rule {rule!r}")


def is_auto_wound(rule: AutoWoundRule, result: int) -> bool:
    if isinstance(rule, NoAutoWound):
        return False
    if isinstance(rule, AutoWoundOnRoll):
        return result >= rule.on_result
    raise TypeError(f"Unknown auto wound rule {rule!r}")


def is_auto_hit(rule: AutoHitRule) -> bool:
    if isinstance(rule, NoAutoHit):
        return False
    if isinstance(rule, AlwaysHit):
        return True
    raise TypeError(f"Unknown auto hit rule {rule!r}")


def get_additional_hits(rule: AdditionalHitsRule, result: int) -> Value:
    if isinstance(rule, NoAdditionalHits):
        return NONE
    if isinstance(rule, AdditionalHitsOnRoll):
        return rule.additional_hits if result >= rule.on_result else NONE
    raise TypeError(f"Unknown additional hits rule {rule!r}")


@dataclass(frozen=True)
class HitRules:
    reroll: RerollRule = NoReroll()
    auto_hit: AutoHitRule = NoAutoHit()
    auto_wound: AutoWoundRule = NoAutoWound()
    additional_hits: AdditionalHitsRule = NoAdditionalHits()
    damage: CharacteristicRule = NoModification()
    strength: CharacteristicRule = NoModification()
    penetration: CharacteristicRule = NoModification()
    mortal_wounds: MortalWoundsRule = NoMortalWounds()


@dataclass(frozen=True)
class WoundRules:
    reroll: RerollRule = NoReroll()
    damage: CharacteristicRule = NoModification()
    strength: CharacteristicRule = NoModification()
    penetration: CharacteristicRule = NoModification()
    mortal_wounds: MortalWoundsRule = NoMortalWounds()


@dataclass(frozen=True)
class Attacker:
    attacks: Value
    skill: int
    strength: Value
    penetration: Value
    damage: Value
    hit_rules: HitRules = HitRules()
    plus_one_to_hit: bool = False
    wound_rules: WoundRules = WoundRules()
    plus_one_to_wound: bool = False

    def __post_init__(self):
        most = self.attacks.max_value()
        if most > MAX_ATTACKS:
            raise TooManyAttacks(MAX_ATTACKS, most)


@dataclass(frozen=True)
class Defender:
    toughness: Value
    save: Value
    invulnerable_save: Value = NO_INVULNERABLE_SAVE
    feel_no_pain: int = NO_FEEL_NO_PAIN
    damage_reduction: Value = NONE
    hit_transhuman: bool = False
    wound_transhuman: bool = False

    def has_feel_no_pain(self) -> bool:
        return self.feel_no_pain <= 6


@dataclass(frozen=True)
class Hit:
    strength: Value
    penetration: Value
    damage: Value


@dataclass
class AttackResult:
    mortal_wounds: List[Value] = field(default_factory=list)
    hits: List[Hit] = field(default_factory=list)
    auto_wounds: List[Hit] = field(default_factory=list)


@dataclass
class WoundResult:
    mortal_wounds: List[Value] = field(default_factory=list)
    hits: List[Hit] = field(default_factory=list)


# Example profiles

SPACE_MARINE = Defender(
    toughness=Constant(4),
    save=Constant(3),
)

GUARDSMAN = Defender(
    toughness=Constant(3),
    save=Constant(5),
    feel_no_pain=6,
)

TERMINATOR = Defender(
    toughness=Constant(5),
    save=Constant(2),
    invulnerable_save=Constant(4),
)

BOLTER = Attacker(
    attacks=Constant(2),
    skill=3,
    strength=Constant(4),
    penetration=Constant(0),
    damage=Constant(1),
)

PLASMA_CANNON = Attacker(
    attacks=D6,
    skill=3,
    strength=Constant(7),
    penetration=Constant(2),
    damage=Constant(2),
)

THUNDER_HAMMER = Attacker(
    attacks=Constant(4),
    skill=4,
    strength=Constant(8),
    penetration=Constant(2),
    damage=add(D3, Constant(3)),
    hit_rules=HitRules(auto_wound=AutoWoundOnRoll(6)),
)

LASGUN = Attacker(
    attacks=Constant(2),
    skill=4,
    strength=Constant(3),
    penetration=Constant(0),
    damage=Constant(1),
    hit_rules=HitRules(additional_hits=AdditionalHitsOnRoll(6, Constant(1))),
)

WEAPONS = {
    "bolter": BOLTER,
    "plasma-cannon": PLASMA_CANNON,
    "thunder-hammer": THUNDER_HAMMER,
    "lasgun": LASGUN,
}

TARGETS = {
    "space-marine": SPACE_MARINE,
    "guardsman": GUARDSMAN,
    "terminator": TERMINATOR,
}
