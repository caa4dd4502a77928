from stockvoice.nodes.normalize import normalize


def test_latvian_corrections_are_case_insensitive():
    assert normalize("Pievieno divus TAJOTA Corolla", "lv") == "Pievieno divus Toyota Corolla"


def test_multi_word_correction():
    assert normalize("divi bremzha diski tajota corolla", "lv") == "divi bremžu disks Toyota corolla"


def test_only_whole_words_are_replaced():
    assert normalize("tajotas tajota2 xtajota", "lv") == "tajotas tajota2 xtajota"


def test_unmatched_text_keeps_its_case():
    assert normalize("Noņem 3 Audi A4 lukturus", "lv") == "Noņem 3 Audi A4 lukturus"


def test_russian_text_is_not_corrected():
    assert normalize("добавь tajota", "ru") == "добавь tajota"


def test_unknown_language_and_empty_text_pass_through():
    assert normalize("tajota", "en") == "tajota"
    assert normalize("", "lv") == ""
