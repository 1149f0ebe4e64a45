"""
Translation of version-local option letters to master option letters.

A permutation string lists, for each of a version's options in order, the
master option it corresponds to. With permutation "CADEB" a student who
picks option C on that version has chosen master option D.
"""
from typing import Optional

from regrader.schemas.exam import ANS_CHOICES
from regrader.schemas.item_analysis import BLANK_OTHER


def decode_permutation(student_choice: Optional[str], permutation: str) -> str:
    """
    Map a version-local choice to its master option letter.

    Args:
        student_choice: The letter the student marked (case-insensitive)
        permutation: Master letter for each of the version's options

    Returns:
        The master option letter, or "Blank/Other" when the choice is blank,
        not a letter A-E, or beyond the length of the permutation.

    Example:
        >>> decode_permutation("C", "CADEB")
        'D'
    """
    choice = (student_choice or "").strip().upper()
    if len(choice) != 1 or choice not in ANS_CHOICES:
        return BLANK_OTHER

    index = ANS_CHOICES.index(choice)
    perm = (permutation or "").strip().upper()
    if index >= len(perm):
        return BLANK_OTHER
    return perm[index]


def encode_master_option(master_letter: str, permutation: str) -> Optional[str]:
    """Return the version-local letter presenting ``master_letter``, if any."""
    letter = (master_letter or "").strip().upper()
    if len(letter) != 1:
        return None
    position = (permutation or "").strip().upper().find(letter)
    if position < 0 or position >= len(ANS_CHOICES):
        return None
    return ANS_CHOICES[position]
