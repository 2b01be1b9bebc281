"""Password generation and strength scoring. Stateless helpers."""
from __future__ import annotations
import secrets, string
from typing import Tuple
from config.settings import MIN_GENERATED_LENGTH
from .secret import SecretBuffer

SYMBOLS = '!@#$%^&*()_+-=[]|,./?><'
ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits + SYMBOLS
COMMON_PATTERNS = ('password', 'qwerty', 'abc', '123', '111')


def generate_password(length: int = 16) -> SecretBuffer:
	if length < MIN_GENERATED_LENGTH:
		raise ValueError(f'Password length must be at least {MIN_GENERATED_LENGTH} characters')
	buf = bytearray(length)
	for i in range(length):
		buf[i] = ord(secrets.choice(ALPHABET))
	return SecretBuffer.take(buf)


def check_password_strength(password: str) -> Tuple[int, str]:
	score = 0; fb = []
	L = len(password)
	if L >= 12: score += 30
	elif L >= 8: score += 20; fb.append('Use 12+ chars')
	else: fb.append('Too short (min 8)')
	sets = [
		any(c.islower() for c in password), any(c.isupper() for c in password),
		any(c.isdigit() for c in password), any(c in SYMBOLS + '{};:' for c in password),
	]
	score += sum(sets) * 15
	if sum(sets) < 4: fb.append('Add diverse character sets')
	if any(p in password.lower() for p in COMMON_PATTERNS):
		score -= 15; fb.append('Avoid common patterns')
	if L and len(set(password)) < L * 0.6:
		score -= 10; fb.append('Too many repeats')
	score = max(0, min(100, score))
	if score >= 80: label = 'Very Strong'
	elif score >= 60: label = 'Strong'
	elif score >= 40: label = 'Moderate'
	elif score >= 20: label = 'Weak'
	else: label = 'Very Weak'
	text = f'{label} ({score}/100)'
	if fb: text += ' - ' + ', '.join(fb)
	return score, text
