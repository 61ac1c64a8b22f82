"""Intent detection: fast path, keyword/pattern classifier and router.

Submodules are imported directly (``chatrelay.core.intent.classifier``
etc.); ``chatrelay.configs.system`` depends on ``constants`` so this
package must stay import-free.
"""
