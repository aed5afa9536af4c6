from typing import List, Optional

from dicecalc.dice import Value, D6, RandomSource
from dicecalc.warhammer.profile import (
    Attacker, Defender, Hit, AttackResult, WoundResult, RerollState,
    can_reroll, modify_characteristic, get_mortal_wounds, is_auto_wound,
    is_auto_hit, get_additional_hits,
)


def get_wound_threshold(strength: int, toughness: int) -> int:
    """Determine the threshold needed to wound based on S vs T comparison"""
    if strength >= 2 * toughness:
        return 2
    if strength > toughness:
        return 3
    if strength == toughness:
        return 4
    if strength * 2 <= toughness:
        return 6
    return 5


def passes_hit(result: int, attacker: Attacker) -> bool:
    if result == 1:
        return False
    if result == 6:
        return True
    bonus = 1 if attacker.plus_one_to_hit else 0
    return result + bonus >= attacker.skill


def passes_wound(result: int, threshold: int, attacker: Attacker) -> bool:
    if result == 1:
        return False
    if result == 6:
        return True
    bonus = 1 if attacker.plus_one_to_wound else 0
    return result + bonus >= threshold


def _without_zeros(values: List[Value]) -> List[Value]:
    return [v for v in values if v.max_value() != 0]


def do_hit(attacker: Attacker, defender: Defender, rng: RandomSource,
           reroll_state: Optional[RerollState] = None) -> AttackResult:
    """Roll to hit for every attack, then one wave of rerolls for failures.

    Successful rolls are filed either as normal hits (with any additional
    hits) or, when the auto wound rule triggers, as hits that skip the wound
    roll. Mortal wounds triggered by the roll are collected independently.
    """
    rules = attacker.hit_rules
    if reroll_state is None:
        reroll_state = RerollState()

    hits: List[Hit] = []
    auto_wounds: List[Hit] = []
    mortal_wounds: List[Value] = []
    failed_rolls: List[int] = []

    def roll_attack() -> None:
        if is_auto_hit(rules.auto_hit):
            hits.append(Hit(attacker.strength, attacker.penetration, attacker.damage))
            return

        result = D6.evaluate(rng)
        if defender.hit_transhuman and result <= 4:
            failed_rolls.append(result)
            return
        if not passes_hit(result, attacker):
            failed_rolls.append(result)
            return

        hit = Hit(
            strength=modify_characteristic(rules.strength, result, attacker.strength),
            penetration=modify_characteristic(rules.penetration, result, attacker.penetration),
            damage=modify_characteristic(rules.damage, result, attacker.damage),
        )
        mortal_wounds.append(get_mortal_wounds(rules.mortal_wounds, result))

        if is_auto_wound(rules.auto_wound, result):
            auto_wounds.append(hit)
            return

        extra = get_additional_hits(rules.additional_hits, result).evaluate(rng)
        hits.extend([hit] * (1 + extra))

    for _ in range(attacker.attacks.evaluate(rng)):
        roll_attack()

    rerolls = sum(1 for result in failed_rolls if can_reroll(rules.reroll, result, reroll_state))
    for _ in range(rerolls):
        roll_attack()

    return AttackResult(
        mortal_wounds=_without_zeros(mortal_wounds),
        hits=hits,
        auto_wounds=auto_wounds,
    )


def do_wound(attacker: Attacker, attack_result: AttackResult, defender: Defender,
             rng: RandomSource, reroll_state: Optional[RerollState] = None) -> WoundResult:
    rules = attacker.wound_rules
    if reroll_state is None:
        reroll_state = RerollState()

    mortal_wounds: List[Value] = list(attack_result.mortal_wounds)
    hits: List[Hit] = list(attack_result.auto_wounds)

    def wound(hit: Hit, result: int) -> None:
        mortal_wounds.append(get_mortal_wounds(rules.mortal_wounds, result))
        hits.append(Hit(
            strength=modify_characteristic(rules.strength, result, hit.strength),
            penetration=modify_characteristic(rules.penetration, result, hit.penetration),
            damage=modify_characteristic(rules.damage, result, hit.damage),
        ))

    toughness = defender.toughness.evaluate(rng)

    for hit in attack_result.hits:
        result = D6.evaluate(rng)
        threshold = get_wound_threshold(hit.strength.evaluate(rng), toughness)

        if defender.wound_transhuman and result <= 4:
            # Only the reroll can still wound, and it is bound by transhuman too
            if can_reroll(rules.reroll, result, reroll_state):
                new_result = D6.evaluate(rng)
                if new_result > 4 and passes_wound(new_result, threshold, attacker):
                    wound(hit, new_result)
            continue

        if passes_wound(result, threshold, attacker):
            wound(hit, result)
        elif can_reroll(rules.reroll, result, reroll_state):
            new_result = D6.evaluate(rng)
            if passes_wound(new_result, threshold, attacker):
                wound(hit, new_result)

    return WoundResult(mortal_wounds=_without_zeros(mortal_wounds), hits=hits)


def save_fails(result: int, save_threshold: int) -> bool:
    return result == 1 or result < save_threshold


def do_save(defender: Defender, wound_result: WoundResult, rng: RandomSource) -> int:
    """Roll saves, apply damage reduction and feel no pain; return wounds dealt"""
    pool: List[Value] = list(wound_result.mortal_wounds)
    save = defender.save.evaluate(rng)

    for hit in wound_result.hits:
        threshold = min(save + hit.penetration.evaluate(rng), defender.invulnerable_save.evaluate(rng))
        if save_fails(D6.evaluate(rng), threshold):
            pool.append(hit.damage)

    total = 0
    for damage in pool:
        total += max(damage.evaluate(rng) - defender.damage_reduction.evaluate(rng), 1)

    if not defender.has_feel_no_pain():
        return total

    return sum(1 for _ in range(total) if D6.evaluate(rng) < defender.feel_no_pain)


def attack_sequence(attacker: Attacker, defender: Defender, rng: RandomSource) -> int:
    attack_result = do_hit(attacker, defender, rng)
    wound_result = do_wound(attacker, attack_result, defender, rng)
    return do_save(defender, wound_result, rng)
