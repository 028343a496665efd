# groupfun

Building blocks for group-chat entertainment features. Each module holds the
logic and storage for one feature. Nothing here is tied to a chat protocol.
You pass in group and user ids, display names and, where chance is involved,
a `random.Random`. You get back plain values, or an exception is raised.

## Install

```
pip install groupfun
pip install "groupfun[test]"   # adds pytest and responses for the test suite
```

## Modules

### `groupfun.registry`

`MarriageRegistry(path)` is a SQLite register of daily couples. Each group has
its own table.

- `register(gid, uid, target, username, targetname)` records `uid` taking
  `target` as a partner.
- `lookup(gid, uid)` returns `(Couple | None, Status)`. `Status.USER` means uid
  registered someone, `Status.TARGET` means someone registered uid, and
  `Status.SINGLE` means neither.
- `roster(gid)` lists every `Couple` of a group, ordered by user.
- `divorce(gid, target)` deletes the entries whose partner is `target` and
  returns how many were deleted.
- `remarry(...)` re-registers a couple. It changes nothing when both people
  already hold entries of their own.
- `check_update(gid)` returns the date of the last reset and stamps today's
  date for a group it has not seen.
- `reset(gid)` clears one group, or every group when `gid` is `"ALL"`.

A `Couple` whose `target` is `0` records a user who chose to stay single
(`is_single_noble`). Database failures raise `RegistryError`. The registry is
also a context manager.

### `groupfun.matchmaking`

`Matchmaker(registry, rng=None, clock=datetime.now)` holds the game rules.

- `ensure_today(gid)` resets a registry that dates from an earlier day.
- `draw(gid, uid, members, name_of)` marries uid to a random single among the
  30 most recently active members.
- `propose(gid, uid, target, choice, name_of)` covers `"娶"` and `"嫁"`.
- `become_mistress(gid, uid, target, name_of)` tries to take `target` from
  their current partner.
- `divorce(gid, uid)` tries to end uid's couple.
- `check_single` and `check_mistress` return the refusal text, or `None` when
  the action is allowed.

Results come back as `Outcome` objects with `text`, `partner`,
`partner_name`, `preface` and an `avatar` URL. `str(outcome)` gives the full
reply.

`CooldownManager(interval, burst, clock)` is a per-key token bucket. By
default it allows one use every 12 hours. `cooldown_key(gid, uid)` builds its
key. `slice_name(name, measure)` shortens a name with `"......"` when its
measured width exceeds 350.

### `groupfun.reborn`

`WeightedChooser(choices, rng)` picks items in proportion to integer weights.
`Reborn(rates, rng).roll()` returns the success or failure message of one
reincarnation: a weighted country and a gender. `load_rates(path)` reads a
JSON list of `{"name", "weight"}` objects.

### `groupfun.replies`

`Thesaurus(mapping, rng)` answers exact messages with one of their replies.
It has `keys()`, `reply(key)`, `in` and `len`. `load_thesaurus(data, rng)`
builds one from a JSON object. `DiaryDB(path)` keeps diary lines in SQLite and
has `count()` and `pick(rng)`. `pick` raises `LookupError` when the table is
empty.

### `groupfun.sleep`

`SleepDB(path)` has `sleep(gid, uid, now)` and `get_up(gid, uid, now)`. Each
returns the user's rank for the night or morning and the time since their
previous record. `is_morning` (6 to 12 o'clock) and `is_evening` (21 to 3
o'clock) say when these count. `time_duration` splits a `timedelta` into
hours, minutes and seconds. `morning_message` and `evening_message` format
the replies.

### `groupfun.score`

`ScoreDB(path)` stores cookie scores and sign-in counts. It has `get_score`,
`set_score`, `get_sign_in`, `set_sign_in_count` and `top_scores(n)`.
`sign_in(db, uid, now)` awards one cookie per day, up to `SCOREMAX` (120), and
returns a `SignInResult` with the score, level, next-level threshold,
greeting and date. `get_level`, `next_level_score` and `get_hour_word` are
available on their own.

### `groupfun.wordle`

`WordleGame(target, dictionary)` gives `len(target) + 1` guesses.

- `guess(word)` returns a `GuessResult` with `win`, `exhausted`, per-letter
  `LetterState`s and `over`. A guess of the wrong length raises
  `LengthNotEnoughError`. A word missing from the dictionary raises
  `UnknownWordError`. A guess after the game has ended raises `WordleError`.
- `grid()` returns the board as rows of `(letter, state)` cells.
- `render_png()` draws the board as PNG bytes.

`load_word_list(text)` splits and sorts a word list. `class_length(name)`
maps `""`, `"五阶"`, `"六阶"` and `"七阶"` to word lengths.

### `groupfun.ymgal`

`YmgalDB(path)` stores `Ymgal` picture sets. It has `upsert`, `get_by_id`,
`random(picture_type, rng)` and `search(picture_type, key, rng)`. The picture
types are `CG_TYPE` and `EMOTICON_TYPE`. `YmgalScraper(session, delay).update(db)`
walks the site's search pages with `requests`, stores the sets it does not yet
know, and returns how many it stored. The page parsers are `parse_page_number`,
`parse_pic_ids`, `parse_cg_page` and `parse_emoticon_page`. They take HTML
text and can be used without the network.

## Example

```python
from groupfun.wordle import WordleGame, load_word_list

words = load_word_list("apple\ngrape\nlemon\n")
game = WordleGame("apple", words)
result = game.guess("grape")
print(result.win, game.grid())
```

```python
from groupfun.registry import MarriageRegistry

with MarriageRegistry("registry.db") as registry:
    registry.register(123, 1, 2, "alice", "bob")
    couple, status = registry.lookup(123, 1)
```

## What this package does not do

- It does not connect to any chat service, parse incoming messages, or send
  replies. Wiring the functions above to commands is left to the caller.
- It has no command-line program.
- It draws no roster, sign-in or ranking images. `WordleGame.render_png` is
  the only drawing function.
- Apart from `YmgalScraper`, it downloads nothing. Data files such as country
  rates, thesaurus JSON, word lists and diary databases must be supplied by
  the caller.