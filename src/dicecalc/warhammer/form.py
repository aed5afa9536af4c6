"""
Raw calculator input.

CalculatorForm holds the fields exactly as a user types them (dice notation
as text, toggles as booleans, rule choices as literals). build() turns them
into validated Attacker / Defender models, raising ParseError for a field
that has to be fixed and a CapacityError for input that is too large to
simulate.
"""

import logging
from typing import Literal, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field

from dicecalc import dice
from dicecalc.dice import Value, NONE
from dicecalc.errors import CapacityError, ParseError, TooManyAttacks, TooManyAdditionalHits
from dicecalc.warhammer.profile import (
    MAX_ATTACKS, MAX_ADDITIONAL_HITS,
    Attacker, Defender, HitRules, WoundRules,
    NoReroll, RerollOnes, RerollSingle, RerollAllFails, RerollRule,
    NoAutoHit, AlwaysHit, NoAutoWound, AutoWoundOnRoll,
    NoAdditionalHits, AdditionalHitsOnRoll,
    NoModification, AddOnRoll, ReplaceOnRoll, CharacteristicRule,
    NoMortalWounds, MortalWoundsOnRoll, MortalWoundsRule,
    NO_INVULNERABLE_SAVE, NO_FEEL_NO_PAIN,
)

logger = logging.getLogger(__name__)

RerollChoice = Literal["NO", "ONES", "SINGLE", "ALL"]
ModificationChoice = Literal["NO", "ADD", "REPLACE"]

# Fields whose stepper may go down to zero
ZERO_ALLOWED = frozenset({"penetration", "ap_on_hit", "ap_on_wound"})


def _reroll_rule(choice: RerollChoice) -> RerollRule:
    if choice == "NO":
        return NoReroll()
    if choice == "ONES":
        return RerollOnes()
    if choice == "SINGLE":
        return RerollSingle()
    if choice == "ALL":
        return RerollAllFails()
    raise TypeError(f"Unknown reroll choice {choice!r}")


def _characteristic_rule(choice: ModificationChoice, on_result: int, value: Value) -> CharacteristicRule:
    if choice == "NO":
        return NoModification()
    if choice == "ADD":
        return AddOnRoll(on_result, value)
    if choice == "REPLACE":
        return ReplaceOnRoll(on_result, value)
    raise TypeError(f"Unknown modification choice {choice!r}")


class CalculatorForm(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Attacker
    attacks: str = Field(default="1", description="Number of attacks, dice notation")
    skill: str = Field(default="3", description="Weapon / ballistic skill, 2 to 6")
    strength: str = "4"
    penetration: str = "0"
    damage: str = "1"

    additional_hits_rule: bool = False
    additional_hits_on: str = "6"
    additional_hits: str = "1"

    auto_hit: bool = False

    hit_reroll: RerollChoice = "NO"
    plus_one_to_hit: bool = False

    damage_on_hit_rule: ModificationChoice = "NO"
    damage_on_hit_on: str = "6"
    damage_on_hit: str = "1"

    mortals_on_hit_rule: bool = False
    mortals_on_hit_on: str = "6"
    mortals_on_hit: str = "1"

    auto_wound_rule: bool = False
    auto_wound_on: str = "6"

    ap_on_hit_rule: ModificationChoice = "NO"
    ap_on_hit_on: str = "6"
    ap_on_hit: str = "1"

    strength_on_hit_rule: ModificationChoice = "NO"
    strength_on_hit_on: str = "6"
    strength_on_hit: str = "1"

    wound_reroll: RerollChoice = "NO"
    plus_one_to_wound: bool = False

    damage_on_wound_rule: ModificationChoice = "NO"
    damage_on_wound_on: str = "6"
    damage_on_wound: str = "1"

    mortals_on_wound_rule: bool = False
    mortals_on_wound_on: str = "6"
    mortals_on_wound: str = "1"

    ap_on_wound_rule: ModificationChoice = "NO"
    ap_on_wound_on: str = "6"
    ap_on_wound: str = "1"

    strength_on_wound_rule: ModificationChoice = "NO"
    strength_on_wound_on: str = "6"
    strength_on_wound: str = "1"

    # Defender
    hit_transhuman: bool = False
    wound_transhuman: bool = False
    toughness: str = "4"
    save: str = "4"
    has_invulnerable_save: bool = False
    invulnerable_save: str = "6"
    has_feel_no_pain: bool = False
    feel_no_pain: str = "6"
    has_damage_reduction: bool = False
    damage_reduction: str = "1"

    def value(self, name: str) -> Value:
        text = getattr(self, name)
        try:
            return dice.parse(text)
        except ParseError as e:
            raise ParseError(str(e), text=text, field=name) from e

    def capped(self, name: str, limit: int, error: Type[CapacityError]) -> Value:
        """Parse a field whose ceiling must stay within limit.

        The ceiling is checked from the text before the value is built.
        """
        text = getattr(self, name)
        try:
            most = dice.ceiling(text)
        except ParseError as e:
            raise ParseError(str(e), text=text, field=name) from e
        if most > limit:
            raise error(limit, most)
        return self.value(name)

    def number(self, name: str, low: int = 1, high: int = 7) -> int:
        text = getattr(self, name).strip()
        if not dice.is_digits(text) or not low <= int(text) <= high:
            logger.debug("Rejected %s=%r", name, text)
            raise ParseError(f"'{text}' must be a number from {low} to {high}", text=text, field=name)
        return int(text)

    def hit_rules(self) -> HitRules:
        if self.additional_hits_rule:
            hits = self.capped("additional_hits", MAX_ADDITIONAL_HITS, TooManyAdditionalHits)
            additional_hits = AdditionalHitsOnRoll(self.number("additional_hits_on"), hits)
        else:
            additional_hits = NoAdditionalHits()

        if self.mortals_on_hit_rule:
            mortal_wounds: MortalWoundsRule = MortalWoundsOnRoll(self.number("mortals_on_hit_on"), self.value("mortals_on_hit"))
        else:
            mortal_wounds = NoMortalWounds()

        return HitRules(
            reroll=_reroll_rule(self.hit_reroll),
            auto_hit=AlwaysHit() if self.auto_hit else NoAutoHit(),
            auto_wound=AutoWoundOnRoll(self.number("auto_wound_on")) if self.auto_wound_rule else NoAutoWound(),
            additional_hits=additional_hits,
            damage=self._modification("damage_on_hit"),
            strength=self._modification("strength_on_hit"),
            penetration=self._modification("ap_on_hit"),
            mortal_wounds=mortal_wounds,
        )

    def wound_rules(self) -> WoundRules:
        if self.mortals_on_wound_rule:
            mortal_wounds: MortalWoundsRule = MortalWoundsOnRoll(self.number("mortals_on_wound_on"), self.value("mortals_on_wound"))
        else:
            mortal_wounds = NoMortalWounds()

        return WoundRules(
            reroll=_reroll_rule(self.wound_reroll),
            damage=self._modification("damage_on_wound"),
            strength=self._modification("strength_on_wound"),
            penetration=self._modification("ap_on_wound"),
            mortal_wounds=mortal_wounds,
        )

    def _modification(self, name: str) -> CharacteristicRule:
        choice = getattr(self, f"{name}_rule")
        if choice == "NO":
            return NoModification()
        return _characteristic_rule(choice, self.number(f"{name}_on"), self.value(name))

    def build_attacker(self) -> Attacker:
        # The attack cap wins over any other field's error
        attacks = self.capped("attacks", MAX_ATTACKS, TooManyAttacks)
        return Attacker(
            attacks=attacks,
            skill=self.number("skill", 2, 6),
            strength=self.value("strength"),
            penetration=self.value("penetration"),
            damage=self.value("damage"),
            hit_rules=self.hit_rules(),
            plus_one_to_hit=self.plus_one_to_hit,
            wound_rules=self.wound_rules(),
            plus_one_to_wound=self.plus_one_to_wound,
        )

    def build_defender(self) -> Defender:
        return Defender(
            toughness=self.value("toughness"),
            save=self.value("save"),
            invulnerable_save=self.value("invulnerable_save") if self.has_invulnerable_save else NO_INVULNERABLE_SAVE,
            feel_no_pain=self.number("feel_no_pain") if self.has_feel_no_pain else NO_FEEL_NO_PAIN,
            damage_reduction=self.value("damage_reduction") if self.has_damage_reduction else NONE,
            hit_transhuman=self.hit_transhuman,
            wound_transhuman=self.wound_transhuman,
        )

    def build(self) -> Tuple[Attacker, Defender]:
        try:
            return self.build_attacker(), self.build_defender()
        except CapacityError as e:
            logger.info("%s (limit %d, got %d)", e, e.limit, e.actual)
            raise

    def increase(self, name: str) -> 'CalculatorForm':
        return self.model_copy(update={name: dice.increase(getattr(self, name))})

    def decrease(self, name: str) -> 'CalculatorForm':
        return self.model_copy(update={name: dice.decrease(getattr(self, name), name in ZERO_ALLOWED)})
